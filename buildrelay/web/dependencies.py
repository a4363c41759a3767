# File: buildrelay/web/dependencies.py
from functools import lru_cache

from buildrelay.core.config.settings import settings
from buildrelay.core.database.connection import init_db
from buildrelay.features.build_dispatch.data.jenkins_client import JenkinsClient
from buildrelay.features.build_dispatch.data.repository import SqlDispatchRepository
from buildrelay.features.build_dispatch.domain.models import DispatchConfig
from buildrelay.features.build_dispatch.service.api import DispatchService
from buildrelay.features.instance_inventory.service.api import InventoryService


@lru_cache
def get_jenkins_client() -> JenkinsClient:
    return JenkinsClient.from_settings(settings)


@lru_cache
def get_dispatch_service() -> DispatchService:
    # One service per process: it owns the registry of running sequences
    init_db()
    client = get_jenkins_client()
    return DispatchService(
        queue=client,
        control=client,
        build_info=client,
        repo=SqlDispatchRepository(),
        config=DispatchConfig.from_settings(settings)
    )


@lru_cache
def get_inventory_service() -> InventoryService:
    return InventoryService()
