from .store import InMemorySubmissionStore

__all__ = ["InMemorySubmissionStore"]
