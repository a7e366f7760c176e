"""Collection-level data access for the studio records.

Each repository wraps one pymongo collection and converts between stored
documents (camelCase keys) and the pydantic domain models. Mongo's ``_id``
never leaves this module.
"""
from datetime import datetime
from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from app.core.errors import ConflictError
from app.core.logging import get_logger
from app.core.permissions import Role
from app.domain.account import Account, Credential, InstructorProfile, ManagerProfile
from app.domain.base import DocumentModel
from app.domain.classes import AttendanceRecord, ClassOffering, RosterEntry
from app.domain.passes import OwnedPass, PassDefinition
from app.infrastructure.ids import next_sequential_id

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=DocumentModel)

NO_MONGO_ID = {"_id": 0}


class Repository(Generic[ModelT]):
    """Common CRUD over one collection keyed by a human-readable id field."""

    model: Type[ModelT]
    id_field: str
    id_prefix: str = ""

    def __init__(self, collection: Collection):
        self.collection = collection

    def _load(self, doc: Optional[Dict[str, Any]]) -> Optional[ModelT]:
        if doc is None:
            return None
        return self.model.model_validate(doc)

    def _load_many(self, docs: Iterable[Dict[str, Any]]) -> List[ModelT]:
        return [self.model.model_validate(doc) for doc in docs]

    def next_id(self, prefix: Optional[str] = None) -> str:
        return next_sequential_id(self.collection, self.id_field, prefix or self.id_prefix)

    def get(self, record_id: str) -> Optional[ModelT]:
        return self._load(self.collection.find_one({self.id_field: record_id}, NO_MONGO_ID))

    def find(self, query: Optional[Dict[str, Any]] = None, sort: Optional[list] = None) -> List[ModelT]:
        cursor = self.collection.find(query or {}, NO_MONGO_ID)
        if sort:
            cursor = cursor.sort(sort)
        return self._load_many(cursor)

    def find_one(self, query: Dict[str, Any]) -> Optional[ModelT]:
        return self._load(self.collection.find_one(query, NO_MONGO_ID))

    def count(self, query: Optional[Dict[str, Any]] = None) -> int:
        return self.collection.count_documents(query or {})

    def exists(self, query: Dict[str, Any]) -> bool:
        return self.collection.find_one(query, {"_id": 1}) is not None

    def insert(self, record: ModelT) -> ModelT:
        try:
            self.collection.insert_one(record.to_document())
        except DuplicateKeyError as exc:
            logger.warning(f"Duplicate key inserting into {self.collection.name}: {exc}")
            raise ConflictError(
                "A record with the same identifier already exists. Please retry.",
                collection=self.collection.name,
            )
        return record

    def update(self, record_id: str, fields: Dict[str, Any]) -> Optional[ModelT]:
        """Apply ``$set`` of camelCase ``fields`` and return the updated record."""
        if not fields:
            return self.get(record_id)
        try:
            doc = self.collection.find_one_and_update(
                {self.id_field: record_id},
                {"$set": fields},
                projection=NO_MONGO_ID,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise ConflictError("Update would duplicate a unique value", collection=self.collection.name)
        return self._load(doc)

    def delete(self, record_id: str) -> bool:
        return self.collection.delete_one({self.id_field: record_id}).deleted_count > 0


class AccountRepository(Repository[Account]):
    model = Account
    id_field = "accountId"

    def next_id_for_role(self, role) -> str:
        return self.next_id(Role(role).id_prefix)

    def by_email(self, email: str) -> Optional[Account]:
        return self.find_one({"email": email})

    def by_role(self, role) -> List[Account]:
        return self.find({"role": Role(role).value}, sort=[("accountId", ASCENDING)])

    def set_role(self, account_id: str, role) -> Optional[Account]:
        return self.update(account_id, {"role": Role(role).value, "updatedAt": datetime.utcnow()})

    def count_created(self, role, start: datetime, end: datetime) -> int:
        return self.count({"role": Role(role).value, "createdAt": {"$gte": start, "$lte": end}})

    def created_between(self, role, start: datetime, end: datetime) -> List[Account]:
        return self.find({"role": Role(role).value, "createdAt": {"$gte": start, "$lte": end}})


class CredentialRepository(Repository[Credential]):
    model = Credential
    id_field = "accountId"

    def active_for(self, account_id: str) -> Optional[Credential]:
        return self.find_one({"accountId": account_id, "isActive": True})

    def set_hash(self, account_id: str, password_hash: str) -> Credential:
        """Create or replace the credential of an account (upsert)."""
        credential = Credential(account_id=account_id, password_hash=password_hash)
        self.collection.replace_one({"accountId": account_id}, credential.to_document(), upsert=True)
        return credential


class InstructorRepository(Repository[InstructorProfile]):
    model = InstructorProfile
    id_field = "instructorId"
    id_prefix = "I"

    def by_account(self, account_id: str) -> Optional[InstructorProfile]:
        return self.find_one({"accountId": account_id})

    def add_class(self, instructor_id: str, class_id: str) -> None:
        self.collection.update_one({"instructorId": instructor_id}, {"$addToSet": {"classIds": class_id}})

    def remove_class(self, instructor_id: str, class_id: str) -> None:
        self.collection.update_one({"instructorId": instructor_id}, {"$pull": {"classIds": class_id}})


class ManagerRepository(Repository[ManagerProfile]):
    model = ManagerProfile
    id_field = "managerId"
    id_prefix = "M"

    def by_account(self, account_id: str) -> Optional[ManagerProfile]:
        return self.find_one({"accountId": account_id})


class PassRepository(Repository[PassDefinition]):
    model = PassDefinition
    id_field = "passId"
    id_prefix = "P"

    def active(self) -> List[PassDefinition]:
        return self.find({"isActive": True}, sort=[("price", ASCENDING)])

    def get_active(self, pass_id: str) -> Optional[PassDefinition]:
        return self.find_one({"passId": pass_id, "isActive": True})


class OwnedPassRepository(Repository[OwnedPass]):
    model = OwnedPass
    id_field = "ownedPassId"
    id_prefix = "UP"

    def for_account(self, account_id: str) -> List[OwnedPass]:
        return self.find({"accountId": account_id}, sort=[("purchaseDate", DESCENDING)])

    def usable_for_account(self, account_id: str, now: datetime) -> List[OwnedPass]:
        return self.find(
            {
                "accountId": account_id,
                "isActive": True,
                "expirationDate": {"$gt": now},
                "sessionsRemaining": {"$gt": 0},
            },
            sort=[("expirationDate", ASCENDING)],
        )

    def owned_by(self, owned_pass_id: str, account_id: str) -> Optional[OwnedPass]:
        return self.find_one({"ownedPassId": owned_pass_id, "accountId": account_id})

    def references_definition(self, pass_id: str) -> bool:
        return self.exists({"passId": pass_id})

    def debit_session(self, owned_pass_id: str, account_id: str) -> Optional[OwnedPass]:
        """Atomically take one session if any remain; None when nothing was debited."""
        doc = self.collection.find_one_and_update(
            {
                "ownedPassId": owned_pass_id,
                "accountId": account_id,
                "sessionsRemaining": {"$gt": 0},
            },
            {"$inc": {"sessionsRemaining": -1}},
            projection=NO_MONGO_ID,
            return_document=ReturnDocument.AFTER,
        )
        return self._load(doc)

    def purchased_between(self, start: datetime, end: datetime) -> List[OwnedPass]:
        return self.find({"purchaseDate": {"$gte": start, "$lte": end}})

    def sales_summary(self, start: datetime, end: datetime) -> Dict[str, float]:
        """Count, revenue and average price of passes purchased in the window."""
        pipeline = [
            {"$match": {"purchaseDate": {"$gte": start, "$lte": end}}},
            {
                "$group": {
                    "_id": None,
                    "totalSales": {"$sum": 1},
                    "totalRevenue": {"$sum": "$purchasePrice"},
                    "averagePrice": {"$avg": "$purchasePrice"},
                }
            },
        ]
        rows = list(self.collection.aggregate(pipeline))
        if not rows:
            return {"totalSales": 0, "totalRevenue": 0.0, "averagePrice": 0.0}
        row = rows[0]
        return {
            "totalSales": int(row.get("totalSales") or 0),
            "totalRevenue": float(row.get("totalRevenue") or 0.0),
            "averagePrice": float(row.get("averagePrice") or 0.0),
        }


class ClassRepository(Repository[ClassOffering]):
    model = ClassOffering
    id_field = "classId"
    id_prefix = "C"

    def all_classes(self, active_only: bool = False) -> List[ClassOffering]:
        query = {"isActive": True} if active_only else {}
        return self.find(query, sort=[("classId", ASCENDING)])

    def for_instructor(self, instructor_id: str, active_only: bool = True) -> List[ClassOffering]:
        query: Dict[str, Any] = {"instructorId": instructor_id}
        if active_only:
            query["isActive"] = True
        return self.find(query, sort=[("classId", ASCENDING)])

    def find_slot_conflict(
        self,
        instructor_id: str,
        day: str,
        time: str,
        exclude_class_id: Optional[str] = None,
    ) -> Optional[ClassOffering]:
        """First other active class of the instructor already using (day, time)."""
        query: Dict[str, Any] = {
            "instructorId": instructor_id,
            "isActive": True,
            "slots": {"$elemMatch": {"day": day, "time": time}},
        }
        if exclude_class_id:
            query["classId"] = {"$ne": exclude_class_id}
        return self.find_one(query)

    def add_registration(self, class_id: str, entry: RosterEntry) -> None:
        self.collection.update_one(
            {"classId": class_id},
            {"$push": {"roster": entry.to_document()}, "$set": {"updatedAt": datetime.utcnow()}},
        )

    def remove_registration(self, class_id: str, account_id: str) -> None:
        self.collection.update_one(
            {"classId": class_id},
            {"$pull": {"roster": {"accountId": account_id}}, "$set": {"updatedAt": datetime.utcnow()}},
        )

    def save_attendance(self, class_id: str, records: List[AttendanceRecord]) -> Optional[ClassOffering]:
        return self.update(
            class_id,
            {"attendance": [record.to_document() for record in records], "updatedAt": datetime.utcnow()},
        )

    def with_registrant(self, account_id: str) -> List[ClassOffering]:
        return self.find({"roster.accountId": account_id})
