"""
Shared utilities and models for the vote tally service.

This package contains common code used across the service and its scripts:
- Data models (Citizen, Candidate, VoteOutcome)
- Colon-joined cache record codecs
- Redis key templates
"""

from .models import (
    Citizen,
    Candidate,
    VoteOutcome,
    VOTE_MESSAGES,
    encode_record,
    decode_record,
    encode_citizen,
    decode_citizen,
    encode_candidate,
    decode_candidate,
    get_redis_key,
    get_redis_pattern,
    REDIS_KEYS,
)

__all__ = [
    'Citizen',
    'Candidate',
    'VoteOutcome',
    'VOTE_MESSAGES',
    'encode_record',
    'decode_record',
    'encode_citizen',
    'decode_citizen',
    'encode_candidate',
    'decode_candidate',
    'get_redis_key',
    'get_redis_pattern',
    'REDIS_KEYS',
]

__version__ = '1.0.0'
