import logging
from typing import Any, Callable, Dict, List

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError, ProfileNotFound

from ..domain.errors import InventoryError, ProfileNotFoundError
from ..domain.interfaces import IInstanceSource
from ..domain.models import InstanceSummary

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, str], Any]


def profile_ec2_client(profile: str, region: str):
    """EC2 client authenticated with the named local profile."""
    session = boto3.Session(profile_name=profile, region_name=region)
    return session.client("ec2")


class Ec2InstanceSource(IInstanceSource):

    def __init__(self, client_factory: ClientFactory = profile_ec2_client):
        self.client_factory = client_factory

    def describe_instances(self, profile: str, region: str) -> List[InstanceSummary]:
        logger.info(f"AWS DescribeInstances requested for profile: {profile}, region: {region}")

        try:
            ec2 = self.client_factory(profile, region)
            paginator = ec2.get_paginator("describe_instances")

            instances = []
            for page in paginator.paginate():
                for reservation in page.get("Reservations", []):
                    for raw in reservation.get("Instances", []):
                        instances.append(self._to_summary(raw, region))
            return instances

        except ProfileNotFound as e:
            raise ProfileNotFoundError(f"AWS profile '{profile}' not found.") from e
        except NoCredentialsError as e:
            raise InventoryError(f"No AWS credentials available for profile '{profile}'.") from e
        except (ClientError, BotoCoreError) as e:
            logger.error(f"AWS DescribeInstances error: {e}")
            raise InventoryError(str(e)) from e

    @staticmethod
    def _to_summary(raw: Dict[str, Any], region: str) -> InstanceSummary:
        tags = {
            t["Key"]: t["Value"]
            for t in raw.get("Tags", [])
            if t.get("Key") and t.get("Value")
        }
        return InstanceSummary(
            instance_id=raw["InstanceId"],
            region=region,
            name=tags.get("Name", ""),
            state=(raw.get("State") or {}).get("Name"),
            instance_type=raw.get("InstanceType"),
            private_ip=raw.get("PrivateIpAddress") or "",
            public_ip=raw.get("PublicIpAddress") or "",
            launch_time=raw.get("LaunchTime"),
            vpc_id=raw.get("VpcId"),
            subnet_id=raw.get("SubnetId"),
            image_id=raw.get("ImageId"),
            security_groups=", ".join(
                sg.get("GroupName", "") for sg in raw.get("SecurityGroups", [])
            ),
            tags=tags
        )
