import logging
from pathlib import Path
from typing import Dict, List, Optional

from botocore import configloader
from botocore.exceptions import ConfigNotFound, ConfigParseError

from ..domain.errors import InventoryError
from ..domain.interfaces import IProfileStore

logger = logging.getLogger(__name__)


class AwsConfigProfileStore(IProfileStore):
    """
    Reads profiles straight from the AWS CLI config file (~/.aws/config).
    Only the config file is consulted; credentials-only profiles have no
    region and are of no use for describing instances.
    """

    def __init__(self, config_path: Path):
        self.config_path = Path(config_path)

    def list_profiles(self) -> List[str]:
        return list(self._load().keys())

    def get_region(self, profile: str) -> Optional[str]:
        section = self._load().get(profile)
        if not section:
            return None
        region = (section.get("region") or "").strip()
        return region or None

    def _load(self) -> Dict[str, dict]:
        # Re-read on every call: profiles can be added while the server runs
        try:
            config = configloader.load_config(str(self.config_path))
        except ConfigNotFound:
            logger.warning(f"AWS config not found at {self.config_path}")
            return {}
        except ConfigParseError as e:
            raise InventoryError(f"Unable to parse AWS config {self.config_path}: {e}") from e
        return config.get("profiles", {})
