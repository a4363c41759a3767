class InventoryError(RuntimeError):
    """AWS could not be queried (credentials, permissions, network...)."""


class ProfileNotFoundError(InventoryError):
    pass


class RegionNotConfiguredError(InventoryError):
    pass
