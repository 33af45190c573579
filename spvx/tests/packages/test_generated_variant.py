# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from spvx.spvxc.core.errors import EncodingError, InputShapeError
from spvx.spvxc.ir.model import BackendFailure, EntryPoint, ExternalObject, ModuleEntryPoint, ProgramVariant, ShaderModule, SourceFile
from spvx.spvxc.packages.serializer import serialize_variant
from spvx.spvxc.packages.spvx_exe_v0 import MIME_TYPE, decode_executable_v0
from spvx.spvxc.test_helpers import fake_spirv_words, make_generated_variant, make_module


def test_single_entry_without_ordinal_round_trips_to_ordinal_zero() -> None:
	variant = make_generated_variant([EntryPoint("main")], [make_module("main", seed=7)])
	artifact = serialize_variant(variant)

	assert artifact.format == "vulkan-spirv-fb"
	assert artifact.mime_type == MIME_TYPE
	assert artifact.name == "variant_0"

	decoded = decode_executable_v0(artifact.data)
	assert decoded == artifact.executable
	assert decoded.entry_points == ("main",)
	assert decoded.shader_module_indices == (0,)
	assert decoded.shader_module_words(0) == fake_spirv_words(7)


def test_module_indices_follow_module_order_and_names_follow_ordinals() -> None:
	variant = make_generated_variant(
		[EntryPoint("a", ordinal=0), EntryPoint("b", ordinal=1)],
		[make_module("b", seed=2), make_module("a", seed=1)],
	)
	defn = serialize_variant(variant).executable
	assert defn.entry_points == ("a", "b")
	assert defn.shader_module_indices == (1, 0)
	assert defn.shader_module_words(defn.shader_module_indices[0]) == fake_spirv_words(1)


def test_subgroup_sizes_are_recorded_by_ordinal() -> None:
	variant = make_generated_variant(
		[EntryPoint("a", ordinal=0), EntryPoint("b", ordinal=1)],
		[make_module("b", subgroup_size=64), make_module("a")],
	)
	defn = serialize_variant(variant).executable
	assert defn.subgroup_sizes == (0, 64)
	assert "subgroup_sizes" in defn.present_fields()


def test_subgroup_sizes_are_omitted_without_hints() -> None:
	variant = make_generated_variant(
		[EntryPoint("a", ordinal=0), EntryPoint("b", ordinal=1)],
		[make_module("a"), make_module("b")],
	)
	defn = decode_executable_v0(serialize_variant(variant).data)
	assert defn.subgroup_sizes is None
	assert defn.present_fields() == ["entry_points", "shader_module_indices", "shader_modules"]


def test_module_with_two_entry_points_is_rejected() -> None:
	module = ShaderModule.from_words(
		"fused_module",
		[ModuleEntryPoint("a"), ModuleEntryPoint("b")],
		fake_spirv_words(1),
	)
	variant = make_generated_variant([EntryPoint("a", ordinal=0), EntryPoint("b", ordinal=1)], [module])
	with pytest.raises(InputShapeError, match="expected to contain exactly one entry point") as excinfo:
		serialize_variant(variant)
	assert excinfo.value.module == "fused_module"
	assert excinfo.value.variant == "variant_0"


def test_module_without_entry_points_is_rejected() -> None:
	module = ShaderModule.from_words("empty", [], fake_spirv_words(1))
	variant = make_generated_variant([EntryPoint("a")], [module])
	with pytest.raises(InputShapeError, match="found 0"):
		serialize_variant(variant)


def test_missing_ordinal_fails_without_output() -> None:
	variant = make_generated_variant(
		[EntryPoint("a", ordinal=0), EntryPoint("b")],
		[make_module("a"), make_module("b")],
	)
	with pytest.raises(InputShapeError) as excinfo:
		serialize_variant(variant)
	assert excinfo.value.reason_code == "missing-ordinal"


def test_module_for_unexported_entry_is_rejected() -> None:
	variant = make_generated_variant([EntryPoint("a")], [make_module("other")])
	with pytest.raises(InputShapeError, match="not exported") as excinfo:
		serialize_variant(variant)
	assert excinfo.value.entry == "other"


def test_entry_without_module_is_rejected() -> None:
	variant = make_generated_variant(
		[EntryPoint("a", ordinal=0), EntryPoint("b", ordinal=1)],
		[make_module("a")],
	)
	with pytest.raises(InputShapeError, match="ordinal 1") as excinfo:
		serialize_variant(variant)
	assert excinfo.value.reason_code == "missing-module"


def test_entry_provided_twice_is_rejected() -> None:
	variant = make_generated_variant([EntryPoint("a")], [make_module("a", seed=1), make_module("a", seed=2)])
	with pytest.raises(InputShapeError, match="more than one module"):
		serialize_variant(variant)


def test_backend_failure_is_an_encoding_error() -> None:
	def failing() -> list[int]:
		raise BackendFailure("unsupported capability")

	module = ShaderModule("m", (ModuleEntryPoint("main"),), failing)
	variant = make_generated_variant([EntryPoint("main")], [module])
	with pytest.raises(EncodingError, match="failed to serialize module 'm': unsupported capability") as excinfo:
		serialize_variant(variant)
	assert excinfo.value.entry == "main"


def test_empty_backend_result_is_an_encoding_error() -> None:
	module = ShaderModule.from_words("m", [ModuleEntryPoint("main")], [])
	with pytest.raises(EncodingError, match="empty binary"):
		serialize_variant(make_generated_variant([EntryPoint("main")], [module]))


def test_out_of_range_word_is_an_encoding_error() -> None:
	module = ShaderModule.from_words("m", [ModuleEntryPoint("main")], [1 << 32])
	with pytest.raises(EncodingError, match="failed to serialize"):
		serialize_variant(make_generated_variant([EntryPoint("main")], [module]))


def test_variant_with_both_inputs_is_rejected() -> None:
	variant = ProgramVariant(
		name="mixed",
		format="vulkan-spirv-fb",
		entry_points=(EntryPoint("main"),),
		modules=(make_module("main"),),
		objects=(ExternalObject(data=b"\0" * 8),),
	)
	with pytest.raises(InputShapeError, match="both shader modules and external objects"):
		serialize_variant(variant)


def test_variant_without_inputs_is_rejected() -> None:
	variant = ProgramVariant(name="empty", format="vulkan-spirv-fb", entry_points=(EntryPoint("main"),))
	with pytest.raises(InputShapeError, match="should contain some shader modules") as excinfo:
		serialize_variant(variant)
	assert excinfo.value.variant == "empty"


@pytest.mark.parametrize("size", [1 << 40, -1])
def test_subgroup_size_outside_u32_is_rejected(size: int) -> None:
	variant = make_generated_variant([EntryPoint("main")], [make_module("main", subgroup_size=size)])
	with pytest.raises(InputShapeError, match="does not fit in u32") as excinfo:
		serialize_variant(variant)
	assert excinfo.value.reason_code == "invalid-subgroup-size"
	assert excinfo.value.entry == "main"
	assert excinfo.value.module == "main_module"
	assert excinfo.value.variant == "variant_0"


def test_unencodable_source_path_is_an_encoding_error() -> None:
	sources = [SourceFile("bad\udc80.mlir", b"")]
	variant = make_generated_variant([EntryPoint("main")], [make_module("main")], sources=sources)
	with pytest.raises(EncodingError, match="failed to encode executable") as excinfo:
		serialize_variant(variant)
	assert excinfo.value.reason_code == "container-encode-failed"
	assert excinfo.value.variant == "variant_0"
