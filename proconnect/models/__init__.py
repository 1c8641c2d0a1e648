from proconnect.models.persisted_state import PersistedState

__all__ = ["PersistedState"]
