"""
RaffleCast Data Model

Participants, the deduplicated roster they form, import statistics and
the winner records appended to the drawing history.
"""

import json
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any, Iterator

# Days a winner has to claim the prize
CLAIM_WINDOW_DAYS = 15


@dataclass(frozen=True)
class ParticipantRecord:
    """One participant, built from one row of an imported export."""
    name: str
    phone: str = ""
    document_id: str = ""
    city: str = ""
    address: str = ""
    email: str = ""
    details: Dict[str, Any] = field(default_factory=dict)  # every original column, verbatim
    id: Optional[int] = None

    @property
    def key(self) -> str:
        """Deduplication key: document id > phone > lowercased name."""
        return dedup_key(self)

    def with_id(self, participant_id: int) -> "ParticipantRecord":
        return replace(self, id=participant_id)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParticipantRecord":
        details = data.get("details") or {}
        if isinstance(details, str):
            details = json.loads(details)
        return cls(
            name=data.get("name", ""),
            phone=data.get("phone") or "",
            document_id=data.get("document_id") or "",
            city=data.get("city") or "",
            address=data.get("address") or "",
            email=data.get("email") or "",
            details=details,
            id=data.get("id"),
        )


def dedup_key(record: ParticipantRecord) -> str:
    """
    Derive the uniqueness key for a participant.

    Two different people sharing a common name and carrying neither a
    document id nor a phone collapse onto the same key.
    """
    if len(record.document_id) > 5:
        return record.document_id
    if len(record.phone) > 8:
        return record.phone
    return record.name.lower()


class Roster:
    """
    Ordered collection of participants, unique by dedup key.

    Rosters are replaced wholesale by the show state; removal returns a new
    roster so a drawing never sees its roster change underneath it.
    """

    def __init__(self, records: Optional[List[ParticipantRecord]] = None):
        self._records: List[ParticipantRecord] = []
        self._keys: Dict[str, int] = {}
        for record in records or []:
            self.add(record)

    def add(self, record: ParticipantRecord) -> bool:
        """Insert a record unless its key is already present. First occurrence wins."""
        key = record.key
        if key in self._keys:
            return False
        self._keys[key] = len(self._records)
        self._records.append(record)
        return True

    def get(self, participant_id: int) -> Optional[ParticipantRecord]:
        for record in self._records:
            if record.id == participant_id:
                return record
        return None

    def without(self, participant_id: int) -> "Roster":
        """Return a new roster lacking the participant with the given id."""
        return Roster([r for r in self._records if r.id != participant_id])

    def names(self) -> List[str]:
        return [r.name for r in self._records]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ParticipantRecord]:
        return iter(list(self._records))

    def __getitem__(self, index: int) -> ParticipantRecord:
        return self._records[index]

    def __bool__(self) -> bool:
        return bool(self._records)

    def to_list(self) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self._records]


@dataclass
class DuplicateEntry:
    """A row dropped because its key was already taken."""
    name: str
    reason: str
    key: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ImportStats:
    """Outcome counters for one roster import."""
    total_read: int = 0
    total_valid: int = 0
    duplicates: int = 0
    no_name: int = 0
    details: List[DuplicateEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_read": self.total_read,
            "total_valid": self.total_valid,
            "duplicates": self.duplicates,
            "no_name": self.no_name,
            "details": [d.to_dict() for d in self.details],
        }


@dataclass(frozen=True)
class WinnerRecord:
    """Snapshot of a drawn participant together with the prize in effect."""
    participant: ParticipantRecord
    prize: str
    won_at: datetime
    id: Optional[int] = None

    @property
    def name(self) -> str:
        return self.participant.name

    @property
    def phone(self) -> str:
        return self.participant.phone

    @property
    def claim_deadline(self) -> datetime:
        return self.won_at + timedelta(days=CLAIM_WINDOW_DAYS)

    def with_id(self, history_id: int) -> "WinnerRecord":
        return replace(self, id=history_id)

    def to_dict(self) -> Dict[str, Any]:
        """Flat dictionary for JSON serialization and display messages."""
        data = self.participant.to_dict()
        data["participant_id"] = data.pop("id")
        data.update({
            "id": self.id,
            "prize": self.prize,
            "won_at": self.won_at.isoformat(),
            "claim_deadline": self.claim_deadline.isoformat(),
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WinnerRecord":
        participant = ParticipantRecord.from_dict(
            dict(data, id=data.get("participant_id"))
        )
        won_at = data.get("won_at")
        if isinstance(won_at, str):
            won_at = datetime.fromisoformat(won_at)
        return cls(
            participant=participant,
            prize=data.get("prize", ""),
            won_at=won_at or datetime.now(),
            id=data.get("id"),
        )
