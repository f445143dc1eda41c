# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Record signing seam.

Key management and signing live outside trustweb. A signer takes an
unsigned record and hands back a signed, content-addressed one.
"""

from __future__ import annotations

import json
import logging
import shlex
import subprocess
import time
from typing import Protocol, runtime_checkable

from ..core.exceptions import SignerException, ValidationException
from .records import Record, UnsignedRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class RecordSigner(Protocol):
    """Anything that can turn an unsigned record into a signed one."""

    def sign(self, unsigned: UnsignedRecord) -> Record:
        """Sign the record, returning it with id and sig filled in."""
        ...


class CommandSigner:
    """Signs by piping the unsigned record, as JSON, through an external command.

    The command reads one JSON object on stdin and must print the signed
    record as JSON on stdout.
    """

    def __init__(self, command: str, timeout: float = 30.0):
        if not command.strip():
            raise SignerException("Signer command is empty")
        self.command = command
        self.timeout = timeout

    def sign(self, unsigned: UnsignedRecord) -> Record:
        if not unsigned.created_at:
            unsigned.created_at = int(time.time())

        try:
            result = subprocess.run(
                shlex.split(self.command),
                input=json.dumps(unsigned.to_dict()),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise SignerException(f"Signer could not run: {e}", command=self.command) from e

        if result.returncode != 0:
            stderr = result.stderr.strip().splitlines()
            reason = stderr[-1] if stderr else f"exit status {result.returncode}"
            raise SignerException(f"Signer failed: {reason}", command=self.command)

        try:
            record = Record.from_dict(json.loads(result.stdout))
        except (ValueError, ValidationException) as e:
            raise SignerException(f"Signer returned an invalid record: {e}", command=self.command) from e

        if record.kind != unsigned.kind:
            raise SignerException(
                f"Signer returned kind {record.kind}, expected {unsigned.kind}",
                command=self.command,
            )

        logger.debug(f"Signed kind {record.kind} record {record.id[:12]}...")
        return record
