"""
ec2tester/utils/ephemeral_file.py

Async context manager that writes some text to a file inside a private temp
directory, yields the file path, and removes both on exit (success or error).
Used for manifests handed to an external CLI by path.
"""

import os
import shutil
import tempfile
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import aiofiles


@asynccontextmanager
async def ephemeral_file(
    file_name: str,
    content: str,
    *,
    prefix: str = "ec2tester-",
    parent_dir: Optional[str] = None,
    mode: int = 0o600,
) -> AsyncGenerator[str, None]:
    """
    Write `content` to `<new temp dir>/<file_name>` and yield that path.

    Args:
        file_name: Name of the file inside the ephemeral directory. Must not
                   contain a path separator.
        content: Text to write.
        prefix: Prefix for the ephemeral directory name.
        parent_dir: Where to create the directory; the system temp dir if None.
        mode: Permission bits for the written file.

    Yields:
        str: The absolute path of the written file.

    Raises:
        ValueError: If file_name is empty or contains a separator.
    """
    if not file_name or os.sep in file_name:
        raise ValueError(f"invalid ephemeral file name {file_name!r}")

    ephemeral_dir = tempfile.mkdtemp(dir=parent_dir, prefix=prefix)
    try:
        ephemeral_path = os.path.join(ephemeral_dir, file_name)
        async with aiofiles.open(ephemeral_path, mode="w", encoding="utf-8") as f:
            await f.write(content)
        os.chmod(ephemeral_path, mode)
        yield os.path.abspath(ephemeral_path)
    finally:
        shutil.rmtree(ephemeral_dir, ignore_errors=True)
