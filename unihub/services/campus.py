"""
Campus scoping.

Every read goes through the same two steps:
1. fetch the candidate set by its primary predicate (owner, id, job ...)
2. drop anything whose university differs from the caller's before it is
   serialized

References between documents are stored as raw ObjectIds. A Ref carries
that id plus, once loaded, the referenced document; ownership checks only
ever compare `Ref.id`.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from bson import ObjectId
from pymongo.database import Database

from unihub.core.errors import Forbidden, InvalidInput
from unihub.db.mongodb import COLLECTIONS, serialize_doc

T = TypeVar("T")

# Fields of another user that may be exposed in a populated reference
PUBLIC_USER_FIELDS = ("name", "email", "university")


@dataclass
class Ref:
    id: ObjectId
    doc: Optional[dict] = None

    @property
    def university(self) -> Optional[str]:
        if self.doc is None:
            return None
        return self.doc.get("university")

    def to_json(self) -> dict:
        if self.doc is None:
            return {"_id": str(self.id)}
        out = serialize_doc(self.doc)
        out["_id"] = str(self.id)
        return out


def require_campus(user: dict, message: str = None) -> str:
    """Return the caller's university or fail if the profile is incomplete."""
    university = user.get("university")
    if not university:
        raise InvalidInput(message or "Please complete your profile (university is required)")
    return university


def ensure_same_campus(record_university: Optional[str], university: str, message: str) -> None:
    if record_university != university:
        raise Forbidden(message)


def campus_filter(items: Iterable[T], university: str, campus_of: Callable[[T], Optional[str]]) -> List[T]:
    """Post-filter: keep only items whose resolved university equals the caller's."""
    return [item for item in items if campus_of(item) == university]


def load_refs(db: Database, collection: str, ids: Sequence, fields: Sequence[str]) -> Dict[ObjectId, dict]:
    """Fetch the referenced documents in one query, keyed by _id."""
    wanted = list({i for i in ids if i is not None})
    if not wanted:
        return {}
    projection = {f: 1 for f in fields}
    cursor = db[collection].find({"_id": {"$in": wanted}}, projection)
    return {doc["_id"]: doc for doc in cursor}


def user_refs(db: Database, ids: Sequence, fields: Sequence[str] = PUBLIC_USER_FIELDS) -> Dict[ObjectId, dict]:
    return load_refs(db, COLLECTIONS["users"], ids, fields)


def make_ref(ref_id, resolved: Dict[ObjectId, dict]) -> Optional[Ref]:
    if ref_id is None:
        return None
    return Ref(id=ref_id, doc=resolved.get(ref_id))


def scoped_ref(ref_id, resolved: Dict[ObjectId, dict], university: str) -> Optional[Ref]:
    """
    Like make_ref, but a referenced document from another campus is never
    exposed; only its raw id is kept.
    """
    ref = make_ref(ref_id, resolved)
    if ref is not None and ref.doc is not None and ref.university is not None and ref.university != university:
        return Ref(id=ref.id)
    return ref


def ref_json(ref_id, resolved: Dict[ObjectId, dict], university: str) -> Optional[dict]:
    ref = scoped_ref(ref_id, resolved, university)
    return ref.to_json() if ref else None
