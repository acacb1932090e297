from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class SyncMode(str, enum.Enum):
    """Sync run mode"""
    INCREMENTAL = "incremental"
    FULL = "full"


class SyncStatus(str, enum.Enum):
    """Sync run status"""
    RUNNING = "running"
    SUCCESS = "success"
    PARTIAL = "partial_success"
    NO_CHANGES = "no_changes"
    FAILED = "failed"
