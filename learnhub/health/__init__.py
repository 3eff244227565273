from learnhub.health.router import router


__all__ = ["router"]
