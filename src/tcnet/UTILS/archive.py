# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Tar archive helpers for copying files into and out of containers.

The Docker API only moves files as tar streams, so both directions go through
these helpers.
"""
import io
import os
import posixpath
import tarfile
import time
from typing import Iterable, Optional


def pack_path(source: str, target: str, mode: Optional[int] = None) -> bytes:
    """
    Packs a host file or directory into a tar archive.

    The archive is meant to be extracted at ``posixpath.dirname(target)``: a file
    is stored under the basename of ``target``; a directory is stored with its
    contents under that basename.

    :param source: Host path of a file or directory.
    :param target: Absolute path the content should land at inside the container.
    :param mode: Permission bits applied to every regular file, if given.
    :return: The tar archive bytes.
    """
    arcname = posixpath.basename(target.rstrip('/'))
    buffer = io.BytesIO()

    def apply_mode(info: tarfile.TarInfo) -> tarfile.TarInfo:
        if mode is not None and info.isfile():
            info.mode = mode
        info.uid = info.gid = 0
        info.uname = info.gname = "root"
        return info

    with tarfile.open(fileobj=buffer, mode="w") as tar:
        tar.add(source, arcname=arcname, recursive=True, filter=apply_mode)
    return buffer.getvalue()


def pack_bytes(name: str, data: bytes, mode: int = 0o644) -> bytes:
    """
    Packs an in-memory payload into a single-file tar archive.
    """
    buffer = io.BytesIO()
    info = tarfile.TarInfo(name=name)
    info.size = len(data)
    info.mode = mode
    info.mtime = int(time.time())
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def unpack_file(chunks: Iterable[bytes]) -> bytes:
    """
    Returns the content of the first regular file in a streamed tar archive.

    :param chunks: The raw stream returned by ``Container.get_archive``.
    :raises FileNotFoundError: If the archive holds no regular file.
    """
    buffer = io.BytesIO(b"".join(chunks))
    with tarfile.open(fileobj=buffer, mode="r") as tar:
        for member in tar.getmembers():
            if member.isfile():
                extracted = tar.extractfile(member)
                if extracted is not None:
                    return extracted.read()
    raise FileNotFoundError("archive does not contain a regular file")


def describe(source: str) -> str:
    """Short description of a host path for log output."""
    kind = "directory" if os.path.isdir(source) else "file"
    return f"{kind} {source}"
