import logging
from typing import List, Optional

from buildrelay.core.config.settings import settings
from ..data.aws_profiles import AwsConfigProfileStore
from ..data.ec2_adapter import Ec2InstanceSource
from ..domain.errors import ProfileNotFoundError, RegionNotConfiguredError
from ..domain.interfaces import IInstanceSource, IProfileStore
from ..domain.models import InstanceFilter, InstanceSummary

logger = logging.getLogger(__name__)

class InventoryService:
    """
    Facade for the Instance Inventory feature.
    Resolves the profile's region locally, then asks EC2.
    """

    def __init__(self,
                 profiles: Optional[IProfileStore] = None,
                 source: Optional[IInstanceSource] = None):
        self.profiles = profiles or AwsConfigProfileStore(settings.AWS_CONFIG_FILE)
        self.source = source or Ec2InstanceSource()

    def list_profiles(self) -> List[str]:
        """Raises ProfileNotFoundError when the config file defines none."""
        profiles = self.profiles.list_profiles()
        if not profiles:
            raise ProfileNotFoundError("No AWS profiles found")
        return profiles

    def describe_instances(self,
                           profile: str,
                           state: Optional[str] = None,
                           name: Optional[str] = None) -> List[InstanceSummary]:
        """
        Lists the profile's instances, optionally filtered.

        Raises:
            ProfileNotFoundError: the profile is not in the config file.
            RegionNotConfiguredError: the profile has no region.
            InventoryError: AWS could not be queried.
        """
        if profile not in self.profiles.list_profiles():
            raise ProfileNotFoundError(f'Profile "{profile}" not found')

        region = self.profiles.get_region(profile)
        if not region:
            raise RegionNotConfiguredError(f'Region not found in profile "{profile}"')

        instances = self.source.describe_instances(profile, region)
        criteria = InstanceFilter(state=state, name=name)
        filtered = [i for i in instances if criteria.accepts(i)]

        logger.info(f"Profile {profile}: {len(filtered)}/{len(instances)} instances after filtering")
        return filtered
