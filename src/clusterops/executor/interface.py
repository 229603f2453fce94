# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol


class RemoteExecutor(Protocol):
    """Runs commands and transfers files on exactly one host."""

    def run(
        self,
        cmd: str,
        *,
        sudo: bool = False,
        timeout: Optional[float] = None,
    ) -> tuple[int, str, str]: ...

    def put_file(self, local_path: str | Path, remote_path: str, *, sudo: bool = False) -> None: ...

    def put_text(self, content: str, remote_path: str, *, sudo: bool = False) -> None: ...

    def close(self) -> None: ...
