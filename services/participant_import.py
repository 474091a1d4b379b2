"""
Participant CSV import.

The raffle client uploads a CSV with a header row. `name` and `username` are
required columns; `id` and a profile picture column are optional. Rows
without a name or username are skipped. A row without an id gets its 1-based
data row position as id, so ids stay stable against the source file.
"""

import csv
import io
import logging
from typing import Dict, List, Optional, Sequence, Tuple
from core.exceptions import InvalidArgumentError
from core.models import Participant

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("name", "username")
PROFILE_PIC_COLUMNS = ("profile pic", "profilepic", "profile_pic")


def _column_index(headers: List[str], *names: str) -> Optional[int]:
    for name in names:
        if name in headers:
            return headers.index(name)
    return None


def _cell(row: List[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def parse_participants_csv(text: str) -> List[Participant]:
    """Parse an uploaded participant CSV into an ordered batch"""
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))

    try:
        headers = [h.strip().lower() for h in next(reader)]
    except StopIteration:
        raise InvalidArgumentError("csv", "", "File is empty")

    missing = [column for column in REQUIRED_COLUMNS if column not in headers]
    if missing:
        raise InvalidArgumentError(
            "csv", ",".join(headers), f"Missing required column(s): {', '.join(missing)}"
        )

    name_idx = headers.index("name")
    username_idx = headers.index("username")
    id_idx = _column_index(headers, "id")
    pic_idx = _column_index(headers, *PROFILE_PIC_COLUMNS)

    participants: List[Participant] = []
    seen_ids: Dict[str, int] = {}
    skipped = 0

    for position, row in enumerate(reader, start=1):
        if not any(cell.strip() for cell in row):
            continue

        name = _cell(row, name_idx)
        username = _cell(row, username_idx)
        if not name or not username:
            skipped += 1
            continue

        participant_id = _cell(row, id_idx) or str(position)
        if participant_id in seen_ids:
            raise InvalidArgumentError(
                "id",
                participant_id,
                f"Duplicate id in rows {seen_ids[participant_id]} and {position}",
            )
        seen_ids[participant_id] = position

        participants.append(
            Participant(
                name=name,
                username=username,
                id=participant_id,
                profile_pic=_cell(row, pic_idx) or None,
            )
        )

    logger.info(f"Parsed {len(participants)} participants ({skipped} rows skipped)")
    return participants


class ParticipantRoster:
    """The current participant batch; every import replaces it wholesale"""

    def __init__(self):
        self._participants: Tuple[Participant, ...] = ()

    @property
    def participants(self) -> Tuple[Participant, ...]:
        return self._participants

    def __len__(self) -> int:
        return len(self._participants)

    def replace(self, participants: Sequence[Participant]) -> Tuple[Participant, ...]:
        self._participants = tuple(participants)
        return self._participants

    def search(self, term: str) -> Tuple[Participant, ...]:
        term = term.strip().lower()
        if not term:
            return self._participants
        return tuple(
            p
            for p in self._participants
            if term in p.name.lower() or term in p.username.lower() or term in p.id.lower()
        )
