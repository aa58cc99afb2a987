"""
Shared data models and utilities for the vote tally service.

This module contains:
- Citizen and Candidate: reference records read from PostgreSQL
- VoteOutcome: result of a vote submission and its localized message
- Colon-joined record codecs used for the Redis read-through cache
- Redis key templates
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Any, List, Optional

RECORD_SEPARATOR = ':'


class VoteOutcome(str, Enum):
    """Outcome of a vote submission."""
    SUCCESS = "success"
    INVALID_IDENTITY = "invalid_identity"
    QUOTA_EXCEEDED = "quota_exceeded"
    CANDIDATE_BLANK = "candidate_blank"
    INVALID_CANDIDATE = "invalid_candidate"
    KEYWORD_BLANK = "keyword_blank"

    @property
    def accepted(self) -> bool:
        return self is VoteOutcome.SUCCESS

    @property
    def message(self) -> str:
        return VOTE_MESSAGES[self]


VOTE_MESSAGES = {
    VoteOutcome.SUCCESS: '投票に成功しました',
    VoteOutcome.INVALID_IDENTITY: '個人情報に誤りがあります',
    VoteOutcome.QUOTA_EXCEEDED: '投票数が上限を超えています',
    VoteOutcome.CANDIDATE_BLANK: '候補者を記入してください',
    VoteOutcome.INVALID_CANDIDATE: '候補者を正しく記入してください',
    VoteOutcome.KEYWORD_BLANK: '投票理由を記入してください',
}


@dataclass(frozen=True)
class Citizen:
    """
    A registered voter.

    Attributes:
        mynumber: National identification number, the lookup key
        name: Full name, must match the submitted form exactly
        address: Address, must match the submitted form exactly
        vote_quota: Maximum cumulative vote_count across all submissions
    """
    mynumber: str
    name: str
    address: str
    vote_quota: int

    def matches(self, name: Optional[str], address: Optional[str]) -> bool:
        """Check the submitted name and address against this record."""
        return self.name == name and self.address == address

    @classmethod
    def from_row(cls, row) -> 'Citizen':
        """Create a Citizen from a `users` table row."""
        return cls(
            mynumber=row['mynumber'],
            name=row['name'],
            address=row['address'],
            vote_quota=int(row['votes'])
        )


@dataclass(frozen=True)
class Candidate:
    """
    A candidate standing in the election.

    Attributes:
        id: Primary key in the candidates table
        name: Display name, also the free text voters type
        political_party: Party name, one of the configured parties
        sex: Sex value as stored in the candidates table
    """
    id: int
    name: str
    political_party: str
    sex: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for template rendering."""
        return asdict(self)

    @classmethod
    def from_row(cls, row) -> 'Candidate':
        """Create a Candidate from a `candidates` table row."""
        return cls(
            id=int(row['id']),
            name=row['name'],
            political_party=row['political_party'],
            sex=row['sex']
        )


def encode_record(*fields) -> str:
    """
    Join fields into a single colon-separated cache value.

    No escaping is applied: decoding recovers a separator inside the
    second-to-last field only.
    """
    return RECORD_SEPARATOR.join(str(field) for field in fields)


def decode_record(value: str, field_count: int) -> List[str]:
    """
    Split a colon-separated cache value into exactly `field_count` fields.

    The last field is taken after the last separator and the leading fields
    before the first ones, so the field in between keeps any separators
    it contains (an address such as ``Tokyo 1:2``).

    Raises:
        ValueError: If the value has fewer fields than expected
    """
    head, separator, last = value.rpartition(RECORD_SEPARATOR)
    parts = head.split(RECORD_SEPARATOR, field_count - 2) if separator else []
    parts.append(last)
    if len(parts) != field_count:
        raise ValueError(
            f"Expected {field_count} fields in cached record, got {len(parts)}"
        )
    return parts


def encode_citizen(citizen: Citizen) -> str:
    """Encode a citizen as `name:address:vote_quota`."""
    return encode_record(citizen.name, citizen.address, citizen.vote_quota)


def decode_citizen(mynumber: str, value: str) -> Citizen:
    """Decode a `name:address:vote_quota` cache value."""
    name, address, vote_quota = decode_record(value, 3)
    return Citizen(
        mynumber=mynumber,
        name=name,
        address=address,
        vote_quota=int(vote_quota)
    )


def encode_candidate(candidate: Candidate) -> str:
    """Encode a candidate mirror as `id:party:sex`."""
    return encode_record(candidate.id, candidate.political_party, candidate.sex)


def decode_candidate(name: str, value: str) -> Candidate:
    """Decode an `id:party:sex` cache value for the candidate called `name`."""
    candidate_id, political_party, sex = decode_record(value, 3)
    return Candidate(
        id=int(candidate_id),
        name=name,
        political_party=political_party,
        sex=sex
    )


# Redis key templates for the different data types
REDIS_KEYS = {
    'user': 'users.{}',                                # STRING name:address:quota
    'user_votes': 'users.votes.{}',                    # COUNTER votes cast by a citizen
    'candidate': 'candidates.{}',                      # STRING id:party:sex, keyed by name
    'candidate_result': 'results.candidates.{}',       # COUNTER votes per candidate id
    'party_result': 'results.party.{}',                # COUNTER votes per party
    'sex_result': 'results.sex.{}',                    # COUNTER votes per sex
    'candidate_keywords': 'keywords.candidates.{}',    # ZSET keyword -> weight
    'party_keywords': 'keywords.party.{}',             # ZSET keyword -> weight
}


def get_redis_key(key_type: str, *args) -> str:
    """
    Get formatted Redis key.

    Args:
        key_type: Type of key from REDIS_KEYS
        *args: Arguments to format into key

    Returns:
        str: Formatted Redis key

    Raises:
        KeyError: If key_type is unknown
    """
    return REDIS_KEYS[key_type].format(*args)


def get_redis_pattern(key_type: str) -> str:
    """Get the SCAN pattern matching every key of a given type."""
    return REDIS_KEYS[key_type].format('*')
