"""
Test helpers: in-memory Firestore and document factories.
"""
import copy
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# In-memory Firestore
# ---------------------------------------------------------------------------

_MISSING = object()


def _lookup(data: Dict[str, Any], field_path: str):
    value = data
    for part in field_path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


class FakeSnapshot:
    def __init__(self, doc_id: str, data: Optional[Dict[str, Any]]):
        self.id = doc_id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._data)


class FakeDocumentReference:
    def __init__(self, store: Dict[str, Dict[str, Any]], doc_id: str):
        self._store = store
        self.id = doc_id

    def get(self) -> FakeSnapshot:
        return FakeSnapshot(self.id, self._store.get(self.id))

    def set(self, data: Dict[str, Any]) -> None:
        self._store[self.id] = copy.deepcopy(data)

    def update(self, data: Dict[str, Any]) -> None:
        if self.id not in self._store:
            raise KeyError(f"No document to update: {self.id}")
        self._store[self.id].update(copy.deepcopy(data))


class FakeQuery:
    def __init__(self, store: Dict[str, Dict[str, Any]], filters=None):
        self._store = store
        self._filters = filters or []

    def where(self, filter=None) -> "FakeQuery":
        return FakeQuery(self._store, self._filters + [filter])

    def _matches(self, data: Dict[str, Any]) -> bool:
        for field_filter in self._filters:
            if field_filter.op_string != "==":
                raise NotImplementedError(f"Unsupported operator: {field_filter.op_string}")
            if _lookup(data, field_filter.field_path) != field_filter.value:
                return False
        return True

    def stream(self) -> List[FakeSnapshot]:
        return [
            FakeSnapshot(doc_id, data)
            for doc_id, data in list(self._store.items())
            if self._matches(data)
        ]


class FakeCollection(FakeQuery):
    def document(self, doc_id: str) -> FakeDocumentReference:
        return FakeDocumentReference(self._store, doc_id)


class FakeFirestore:
    """Minimal subset of the Firestore client used by NotificationDatabaseService."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self.collections.setdefault(name, {}))

    def add(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        return self.collections.get(collection, {}).get(doc_id)


# ---------------------------------------------------------------------------
# Document factories
# ---------------------------------------------------------------------------

def make_settings(enabled: bool = True, quiet=None, **flags) -> Dict[str, Any]:
    """notificationSettings with the given category flags set to True."""
    data: Dict[str, Any] = {"enabled": enabled}
    for name, value in flags.items():
        data[name] = value
    if quiet is not None:
        start, end = quiet
        data["quietHours"] = {"enabled": True, "startHour": start, "endHour": end}
    return data


def make_user(
    token: Optional[str] = "token",
    display_name: str = "Tester",
    enabled: bool = True,
    quiet=None,
    **flags,
) -> Dict[str, Any]:
    """User document; keyword flags are category flags, e.g. sosAlerts=True."""
    data: Dict[str, Any] = {
        "displayName": display_name,
        "notificationSettings": make_settings(enabled=enabled, quiet=quiet, **flags),
    }
    if token:
        data["fcmToken"] = token
    return data


def sent_messages(mock_send) -> list:
    """firebase_admin Message objects handed to messaging.send."""
    return [call.args[0] for call in mock_send.call_args_list]


def sent_tokens(mock_send) -> List[str]:
    return sorted(message.token for message in sent_messages(mock_send))
