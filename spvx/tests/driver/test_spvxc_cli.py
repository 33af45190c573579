# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from spvx.spvxc.ir.model import words_to_bytes
from spvx.spvxc.packages.spvx_exe_v0 import load_executable_v0
from spvx.spvxc.spvxc import main as spvxc_main
from spvx.spvxc.test_helpers import fake_spirv_words


def _write_json(path: Path, obj: Any) -> Path:
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(json.dumps(obj), encoding="utf-8")
	return path


def _two_entry_description(tmp_path: Path) -> dict[str, Any]:
	(tmp_path / "b.spv").write_bytes(words_to_bytes(fake_spirv_words(2)))
	return {
		"name": "dispatch_0",
		"entry_points": [
			{
				"name": "a",
				"ordinal": 0,
				"loc": 'fused["a.mlir":4:1]',
				"source_locs": {"0.input": '"in.mlir":2:1', "1.executable": "unknown"},
			},
			{"name": "b", "ordinal": 1},
		],
		"modules": [
			{"name": "ma", "entry_points": [{"fn": "a", "subgroup_size": 64}], "words": fake_spirv_words(1)},
			{"name": "mb", "entry_points": ["b"], "spirv": "b.spv"},
		],
		"sources": [{"path": "in.mlir", "content": "func.func @a()"}],
	}


def test_cli_writes_container(tmp_path: Path) -> None:
	desc = _write_json(tmp_path / "variant.json", _two_entry_description(tmp_path))
	out = tmp_path / "out" / "dispatch_0.spvx"
	assert spvxc_main([str(desc), "-o", str(out)]) == 0

	defn = load_executable_v0(out)
	assert defn.entry_points == ("a", "b")
	assert defn.shader_module_indices == (0, 1)
	assert defn.subgroup_sizes == (64, 0)
	assert defn.shader_module_words(1) == fake_spirv_words(2)
	assert defn.source_locations is None
	assert [f.path for f in defn.source_files] == ["in.mlir"]


def test_cli_summary_with_debug_info(tmp_path: Path, capsys) -> None:
	desc = _write_json(tmp_path / "variant.json", _two_entry_description(tmp_path))
	out = tmp_path / "out.spvx"
	rc = spvxc_main([str(desc), "-o", str(out), "--debug-level", "3", "--indirect-bindings", "--json", "--print-summary"])
	assert rc == 0
	payload = json.loads(capsys.readouterr().out)
	assert payload["exit_code"] == 0
	artifact = payload["artifact"]
	assert artifact["format"] == "vulkan-spirv-fb-ptr"
	assert artifact["size"] == out.stat().st_size
	exe = artifact["executable"]
	assert exe["source_locations"] == [{"filename": "a.mlir", "line": 4}, None]
	assert exe["stage_locations"] == [[{"stage": "0.input", "filename": "in.mlir", "line": 2}], []]


def test_cli_reports_missing_ordinal_as_json(tmp_path: Path, capsys) -> None:
	desc = _write_json(
		tmp_path / "variant.json",
		{
			"name": "dispatch_1",
			"entry_points": [{"name": "a", "ordinal": 0}, {"name": "b"}],
			"modules": [
				{"entry_points": ["a"], "words": [1]},
				{"entry_points": ["b"], "words": [2]},
			],
		},
	)
	out = tmp_path / "out.spvx"
	assert spvxc_main([str(desc), "-o", str(out), "--json"]) == 1
	payload = json.loads(capsys.readouterr().out)
	assert payload["exit_code"] == 1
	diag = payload["diagnostics"][0]
	assert diag["code"] == "missing-ordinal"
	assert diag["phase"] == "serialize"
	assert "entry point: b" in diag["notes"]
	assert not out.exists()


def test_cli_reports_oversized_subgroup_size(tmp_path: Path, capsys) -> None:
	desc = _write_json(
		tmp_path / "variant.json",
		{
			"name": "dispatch_2",
			"entry_points": [{"name": "main"}],
			"modules": [{"entry_points": [{"fn": "main", "subgroup_size": 1 << 40}], "words": [1]}],
		},
	)
	out = tmp_path / "out.spvx"
	assert spvxc_main([str(desc), "-o", str(out), "--json"]) == 1
	diag = json.loads(capsys.readouterr().out)["diagnostics"][0]
	assert diag["code"] == "invalid-variant-description"
	assert "subgroup_size" in diag["message"]
	assert not out.exists()


def test_cli_reports_oversized_source_line(tmp_path: Path, capsys) -> None:
	desc = _write_json(
		tmp_path / "variant.json",
		{
			"name": "dispatch_3",
			"entry_points": [{"name": "main", "loc": '"a.mlir":8589934592'}],
			"modules": [{"entry_points": ["main"], "words": [1]}],
		},
	)
	out = tmp_path / "out.spvx"
	assert spvxc_main([str(desc), "-o", str(out), "--debug-level", "1", "--json"]) == 1
	diag = json.loads(capsys.readouterr().out)["diagnostics"][0]
	assert diag["code"] == "invalid-source-line"
	assert "entry point: main" in diag["notes"]
	assert "variant: dispatch_3" in diag["notes"]
	assert not out.exists()


def test_cli_external_object(tmp_path: Path) -> None:
	(tmp_path / "objs").mkdir()
	(tmp_path / "objs" / "prebuilt.spv").write_bytes(b"\0" * 1024)
	desc = _write_json(
		tmp_path / "variant.json",
		{
			"name": "ext",
			"format": "vulkan-spirv-fb",
			"entry_points": [{"name": "x"}, {"name": "y"}, {"name": "z"}],
			"objects": [{"path": "objs/prebuilt.spv"}],
		},
	)
	out = tmp_path / "ext.spvx"
	assert spvxc_main([str(desc), "-o", str(out)]) == 0
	defn = load_executable_v0(out)
	assert defn.entry_points == ("x", "y", "z")
	assert defn.shader_module_indices == (0, 0, 0)


def test_cli_misaligned_object_is_reported(tmp_path: Path, capsys) -> None:
	desc = _write_json(
		tmp_path / "variant.json",
		{"name": "ext", "entry_points": [{"name": "x"}], "objects": [{"data_hex": "0102030405"}]},
	)
	assert spvxc_main([str(desc), "-o", str(tmp_path / "ext.spvx")]) == 1
	err = capsys.readouterr().err
	assert "error: object file is not 4-byte aligned" in err


def test_cli_unknown_target(tmp_path: Path, capsys) -> None:
	desc = _write_json(tmp_path / "variant.json", _two_entry_description(tmp_path))
	assert spvxc_main([str(desc), "-o", str(tmp_path / "o.spvx"), "--target", "voodoo2", "--json"]) == 1
	payload = json.loads(capsys.readouterr().out)
	assert payload["diagnostics"][0]["code"] == "unknown-target"


def test_cli_dumps(tmp_path: Path) -> None:
	desc_obj = _two_entry_description(tmp_path)
	desc_obj["modules"][0]["assembly"] = "spirv.module Logical GLSL450 {}"
	desc = _write_json(tmp_path / "variant.json", desc_obj)
	rc = spvxc_main(
		[
			str(desc),
			"-o",
			str(tmp_path / "o.spvx"),
			"--dump-intermediates",
			str(tmp_path / "ir"),
			"--dump-binaries",
			str(tmp_path / "bin"),
			"--dump-base-name",
			"dispatch_0",
		]
	)
	assert rc == 0
	assert (tmp_path / "ir" / "dispatch_0_a.spirv.mlir").exists()
	assert not (tmp_path / "ir" / "dispatch_0_b.spirv.mlir").exists()
	assert sorted(p.name for p in (tmp_path / "bin").iterdir()) == ["dispatch_0_a.spv", "dispatch_0_b.spv"]
