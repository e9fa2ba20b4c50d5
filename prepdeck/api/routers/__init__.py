from .progress_router import router as progress_router

__all__ = ["progress_router"]
