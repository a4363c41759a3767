from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

@dataclass(frozen=True)
class InstanceFilter:
    """
    Optional narrowing of a describe-instances listing.
    state: exact EC2 state name (e.g. "running").
    name: case-insensitive substring of the Name tag.
    """
    state: Optional[str] = None
    name: Optional[str] = None

    def accepts(self, instance: "InstanceSummary") -> bool:
        if self.state and instance.state != self.state:
            return False
        if self.name and self.name.lower() not in (instance.name or "").lower():
            return False
        return True

@dataclass
class InstanceSummary:
    """
    One EC2 instance, flattened out of its reservation.
    """
    instance_id: str
    region: str
    name: str = ""
    state: Optional[str] = None
    instance_type: Optional[str] = None
    private_ip: str = ""
    public_ip: str = ""
    launch_time: Optional[datetime] = None
    vpc_id: Optional[str] = None
    subnet_id: Optional[str] = None
    image_id: Optional[str] = None
    security_groups: str = ""
    tags: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        # Key names are the ones the portal's instance table expects
        return {
            "InstanceId": self.instance_id,
            "Name": self.name,
            "State": self.state,
            "InstanceType": self.instance_type,
            "PrivateIp": self.private_ip,
            "PublicIp": self.public_ip,
            "Region": self.region,
            "LaunchTime": self.launch_time.isoformat() if self.launch_time else None,
            "VpcId": self.vpc_id,
            "SubnetId": self.subnet_id,
            "ImageId": self.image_id,
            "SecurityGroups": self.security_groups,
            "Tags": dict(self.tags),
        }
