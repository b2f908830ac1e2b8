from deadlock_mod_manager.models.metadata import ModMetadata

__all__ = ["ModMetadata"]
