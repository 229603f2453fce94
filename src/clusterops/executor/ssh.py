# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterops/executor/ssh.py

from __future__ import annotations

import os
import shlex
import threading
from pathlib import Path
from typing import Optional

import paramiko


def _load_pkey(path: str | Path) -> Optional[paramiko.PKey]:
    for key_cls in (
        paramiko.RSAKey,
        paramiko.Ed25519Key,
        paramiko.ECDSAKey,
    ):
        try:
            return key_cls.from_private_key_file(str(path))
        except paramiko.SSHException:
            continue
    return None


class SSHExecutor:
    """
    paramiko-backed executor for one host. The connection is opened on first
    use; every command is bounded by ``timeout``.
    """

    def __init__(
        self,
        host: str,
        *,
        user: str,
        port: int = 22,
        key_path: Optional[str | Path] = None,
        timeout: float = 5.0,
    ):
        self.host = host
        self.user = user
        self.port = port
        self.key_path = key_path
        self.timeout = timeout
        self._client: Optional[paramiko.SSHClient] = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"SSHExecutor({self.user}@{self.host}:{self.port})"

    def _connect(self) -> paramiko.SSHClient:
        with self._lock:
            if self._client is not None:
                return self._client

            client = paramiko.SSHClient()
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

            pkey = _load_pkey(self.key_path) if self.key_path else None
            client.connect(
                hostname=self.host,
                port=self.port,
                username=self.user,
                pkey=pkey,
                timeout=self.timeout,
                banner_timeout=self.timeout,
                auth_timeout=self.timeout,
                allow_agent=pkey is None,
                look_for_keys=pkey is None,
            )
            self._client = client
            return client

    def run(
        self,
        cmd: str,
        *,
        sudo: bool = False,
        timeout: Optional[float] = None,
    ) -> tuple[int, str, str]:
        if sudo:
            cmd = f"sudo -H -E bash -c {shlex.quote(cmd)}"

        client = self._connect()
        stdin, stdout, stderr = client.exec_command(cmd, timeout=timeout or self.timeout)
        out = stdout.read().decode("utf-8", "replace")
        err = stderr.read().decode("utf-8", "replace")
        rc = stdout.channel.recv_exit_status()
        return rc, out, err

    def put_text(self, content: str, remote_path: str, *, sudo: bool = False) -> None:
        if sudo:
            tmp = f"/tmp/.clusterops.tmp.{os.getpid()}"
            self.put_text(content, tmp)
            self._mv(tmp, remote_path)
            return

        sftp = self._connect().open_sftp()
        try:
            with sftp.open(remote_path, "w") as f:
                f.write(content)
        finally:
            sftp.close()

    def put_file(self, local_path: str | Path, remote_path: str, *, sudo: bool = False) -> None:
        if sudo:
            tmp = f"/tmp/.clusterops.upload.{os.getpid()}"
            self.put_file(local_path, tmp)
            self._mv(tmp, remote_path)
            return

        sftp = self._connect().open_sftp()
        try:
            sftp.put(str(local_path), str(remote_path))
        finally:
            sftp.close()

    def _mv(self, src: str, dst: str) -> None:
        rc, _, err = self.run(f"mv {shlex.quote(src)} {shlex.quote(dst)}", sudo=True)
        if rc != 0:
            raise OSError(f"mv {src} {dst} failed (rc={rc}): {err.strip()}")

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None
