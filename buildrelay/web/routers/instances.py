# buildrelay/web/routers/instances.py
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from buildrelay.features.instance_inventory.service.api import InventoryService
from ..dependencies import get_inventory_service

router = APIRouter(tags=["aws"])

@router.get("/aws-profiles")
def aws_profiles(service: InventoryService = Depends(get_inventory_service)):
    # ProfileNotFoundError -> 404 via the error handlers
    return service.list_profiles()

@router.get("/aws-accounts")
def aws_accounts(
    profile: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    name: Optional[str] = Query(default=None),
    service: InventoryService = Depends(get_inventory_service),
):
    """
    EC2 instances of a local AWS profile (region taken from the profile).
    The route name is historical: the portal page calls it per account.
    """
    if not profile:
        raise HTTPException(status_code=400, detail="Missing profile in query")

    instances = service.describe_instances(profile, state=state, name=name)
    return [i.to_dict() for i in instances]
