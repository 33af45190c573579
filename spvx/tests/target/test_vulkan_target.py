# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from spvx.spvxc.core.errors import ConfigError
from spvx.spvxc.ir.model import SerializationOptions
from spvx.spvxc.target.vulkan import (
	DEFAULT_TARGET,
	GPU_TARGET_CONFIG_KEY,
	TargetDetails,
	VulkanTargetOptions,
	default_device_target,
	executable_target,
	resolve_vulkan_target,
)


def test_default_target_uses_direct_bindings_format() -> None:
	target = executable_target(VulkanTargetOptions())
	assert target.backend == "vulkan-spirv"
	assert target.format == "vulkan-spirv-fb"
	assert target.configuration[GPU_TARGET_CONFIG_KEY].name == DEFAULT_TARGET


def test_indirect_bindings_change_the_format() -> None:
	target = executable_target(VulkanTargetOptions(indirect_bindings=True))
	assert target.format == "vulkan-spirv-fb-ptr"


@pytest.mark.parametrize(
	"name,vendor,arch",
	[
		("gfx1100", "amd", "gfx1100"),
		("sm_80", "nvidia", "sm_80"),
		("RDNA3", "amd", "gfx1100"),
		("valhall4", "arm", "valhall"),
		("rx7900xtx", "amd", "gfx1100"),
		("rtx4090", "nvidia", "sm_89"),
		("adreno", "qualcomm", "adreno"),
	],
)
def test_target_schemes_resolve(name: str, vendor: str, arch: str) -> None:
	details = resolve_vulkan_target(name)
	assert details == TargetDetails(name=name.lower(), vendor=vendor, arch=arch)


def test_unknown_target_is_a_config_error() -> None:
	with pytest.raises(ConfigError, match="unknown Vulkan target 'voodoo2'") as excinfo:
		executable_target(VulkanTargetOptions(target="voodoo2"))
	assert excinfo.value.reason_code == "unknown-target"


def test_default_device_target() -> None:
	device = default_device_target(VulkanTargetOptions(target="ampere"))
	assert device.device_id == "vulkan"
	assert len(device.executable_targets) == 1
	assert device.executable_targets[0].configuration[GPU_TARGET_CONFIG_KEY].vendor == "nvidia"


def test_negative_debug_level_is_a_config_error() -> None:
	with pytest.raises(ConfigError, match="non-negative"):
		SerializationOptions(debug_level=-1)
