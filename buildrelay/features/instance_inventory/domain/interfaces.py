from abc import ABC, abstractmethod
from typing import List, Optional

from .models import InstanceSummary


class IProfileStore(ABC):
    """
    Contract for reading the local AWS CLI profile configuration.
    """

    @abstractmethod
    def list_profiles(self) -> List[str]:
        pass

    @abstractmethod
    def get_region(self, profile: str) -> Optional[str]:
        """
        Region configured for the profile, or None if the profile is
        unknown or has no region.
        """
        pass


class IInstanceSource(ABC):

    @abstractmethod
    def describe_instances(self, profile: str, region: str) -> List[InstanceSummary]:
        """
        Every instance visible to the profile in the region.
        """
        pass
