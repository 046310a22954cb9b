from .store import FirestoreSubmissionStore, create_firestore_client

__all__ = ["FirestoreSubmissionStore", "create_firestore_client"]
