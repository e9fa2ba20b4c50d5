from .progress_store import ConflictError, ProgressStore, ProgressStoreError, SQLProgressStore

__all__ = ["ConflictError", "ProgressStore", "ProgressStoreError", "SQLProgressStore"]
