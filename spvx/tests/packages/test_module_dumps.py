# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path

from structlog.testing import capture_logs

from spvx.spvxc.ir.model import EntryPoint, SerializationOptions, words_to_bytes
from spvx.spvxc.packages.dump import dump_data_to_path
from spvx.spvxc.packages.serializer import serialize_variant
from spvx.spvxc.test_helpers import fake_spirv_words, make_generated_variant, make_module


def test_dumps_are_written_per_entry_point(tmp_path: Path) -> None:
	options = SerializationOptions(
		dump_intermediates_path=tmp_path / "ir",
		dump_binaries_path=tmp_path / "bin",
		dump_base_name="exe",
	)
	module = make_module("main", seed=4, assembly="spirv.module Logical GLSL450 {}")
	serialize_variant(make_generated_variant([EntryPoint("main")], [module], options=options))

	assert (tmp_path / "ir" / "exe_main.spirv.mlir").read_text(encoding="utf-8") == "spirv.module Logical GLSL450 {}"
	assert (tmp_path / "bin" / "exe_main.spv").read_bytes() == words_to_bytes(fake_spirv_words(4))


def test_no_dumps_without_paths(tmp_path: Path) -> None:
	module = make_module("main", assembly="text")
	serialize_variant(make_generated_variant([EntryPoint("main")], [module]))
	assert list(tmp_path.iterdir()) == []


def test_dump_failure_is_logged_not_raised(tmp_path: Path) -> None:
	blocker = tmp_path / "not_a_dir"
	blocker.write_text("x", encoding="utf-8")
	options = SerializationOptions(dump_binaries_path=blocker / "sub")
	with capture_logs() as logs:
		artifact = serialize_variant(make_generated_variant([EntryPoint("main")], [make_module("main")], options=options))
	assert artifact.executable.entry_points == ("main",)
	assert any(e["event"] == "dump_failed" and e["log_level"] == "warning" for e in logs)


def test_dump_data_to_path_disabled() -> None:
	assert dump_data_to_path(None, "m", "main", ".spv", b"\0\0\0\0") is None
