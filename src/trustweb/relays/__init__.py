# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Relay records, fan-out pool and signing seam."""

from .pool import RelayPool
from .records import (
    KIND_CONTACT_LIST,
    KIND_MUTE_LIST,
    PubkeyReference,
    Record,
    RecordFilter,
    UnsignedRecord,
    is_valid_pubkey,
    latest,
    normalize_pubkey,
)
from .signer import CommandSigner, RecordSigner

__all__ = [
    "RelayPool",
    "Record",
    "RecordFilter",
    "UnsignedRecord",
    "PubkeyReference",
    "KIND_CONTACT_LIST",
    "KIND_MUTE_LIST",
    "is_valid_pubkey",
    "normalize_pubkey",
    "latest",
    "RecordSigner",
    "CommandSigner",
]
