import os

from bucketowner.core.base import Base, engine


def setup_database_if_not_present(database_file_path: str) -> bool:
    if os.path.exists(database_file_path):
        return True

    # Base.metadata.create_all requires all models to be loaded before
    # tables can be created. It is placed here for emphasis.
    from bucketowner.core.models import DiscoveryRun  # noqa: F401
    Base.metadata.create_all(engine)
    return True
