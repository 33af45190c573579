# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Best-effort diagnostic dumps of intermediate/binary module forms.

Dumps are a debugging aid only: failures are logged and never escalated.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Union

import structlog

from spvx.spvxc.ir.model import words_to_bytes

logger = structlog.get_logger(__name__)

INTERMEDIATE_SUFFIX = ".spirv.mlir"
BINARY_SUFFIX = ".spv"


def dump_path(dir_path: Path, base_name: str, entry_name: str, suffix: str) -> Path:
	"""Return `<dir>/<base_name>_<entry_name><suffix>`."""
	return Path(dir_path) / f"{base_name}_{entry_name}{suffix}"


def dump_data_to_path(
	dir_path: Optional[Path],
	base_name: str,
	entry_name: str,
	suffix: str,
	data: Union[str, bytes, Sequence[int]],
) -> Optional[Path]:
	"""
	Write `data` for `entry_name` under `dir_path`.

	Text is written as UTF-8, word sequences as little-endian u32s. Returns the
	written path, or None when dumping is disabled or failed.
	"""
	if dir_path is None:
		return None
	path = dump_path(dir_path, base_name, entry_name, suffix)
	if isinstance(data, str):
		payload = data.encode("utf-8")
	elif isinstance(data, (bytes, bytearray)):
		payload = bytes(data)
	else:
		payload = words_to_bytes(data)
	try:
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_bytes(payload)
	except OSError as err:
		logger.warning("dump_failed", path=str(path), error=str(err))
		return None
	logger.debug("dumped", path=str(path), size=len(payload))
	return path
