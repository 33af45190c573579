# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Vulkan target selection.

The target option controls the SPIR-V environment and accepts a few schemes:
1) LLVM CodeGen backend style: `gfx*` for AMD GPUs and `sm_*` for NVIDIA GPUs;
2) architecture code names: `rdna3`, `valhall4`, `ampere`, `adreno`, ...;
3) product names: `rx7900xtx`, `rtx4090`, ...;
plus Vulkan profile names such as `vp_android_baseline_2022`.

Only the identity of the target is resolved here (vendor + architecture).
Capability data is owned by the upstream pipeline.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import structlog

from spvx.spvxc.core.errors import ConfigError

logger = structlog.get_logger(__name__)

BACKEND_ID = "vulkan-spirv"
DEVICE_ID = "vulkan"
FORMAT_DIRECT = "vulkan-spirv-fb"
FORMAT_INDIRECT = "vulkan-spirv-fb-ptr"
GPU_TARGET_CONFIG_KEY = "gpu.target"

# The Android baseline profile is a lowest common denominator: SPIR-V generated
# for it is widely accepted.
DEFAULT_TARGET = "vp_android_baseline_2022"


@dataclass(frozen=True)
class TargetDetails:
	"""Resolved identity of a Vulkan target."""

	name: str
	vendor: str
	arch: str

	def to_dict(self) -> dict[str, str]:
		return {"name": self.name, "vendor": self.vendor, "arch": self.arch}


@dataclass(frozen=True)
class VulkanTargetOptions:
	target: str = DEFAULT_TARGET
	indirect_bindings: bool = False


@dataclass(frozen=True)
class ExecutableTarget:
	"""Descriptor attached to every variant produced for a target."""

	backend: str
	format: str
	configuration: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeviceTarget:
	device_id: str
	executable_targets: tuple[ExecutableTarget, ...]


# Architecture code name -> (vendor, canonical arch).
_ARCH_NAMES: dict[str, tuple[str, str]] = {
	"rdna1": ("amd", "gfx1010"),
	"rdna2": ("amd", "gfx1030"),
	"rdna3": ("amd", "gfx1100"),
	"cdna1": ("amd", "gfx908"),
	"cdna2": ("amd", "gfx90a"),
	"cdna3": ("amd", "gfx942"),
	"valhall1": ("arm", "valhall"),
	"valhall2": ("arm", "valhall"),
	"valhall3": ("arm", "valhall"),
	"valhall4": ("arm", "valhall"),
	"pascal": ("nvidia", "sm_60"),
	"volta": ("nvidia", "sm_70"),
	"turing": ("nvidia", "sm_75"),
	"ampere": ("nvidia", "sm_80"),
	"ada": ("nvidia", "sm_89"),
	"adreno": ("qualcomm", "adreno"),
}

# Product name -> architecture code name (or canonical arch).
_PRODUCT_NAMES: dict[str, str] = {
	"rx7900xtx": "rdna3",
	"rx7900xt": "rdna3",
	"rx7800xt": "rdna3",
	"rx7700xt": "rdna3",
	"v710": "rdna3",
	"w7900": "rdna3",
	"w7800": "rdna3",
	"w7700": "rdna3",
	"mi300x": "cdna3",
	"mi300a": "cdna3",
	"mi250x": "cdna2",
	"mi250": "cdna2",
	"mi210": "cdna2",
	"mi100": "cdna1",
	"rtx4090": "ada",
	"rtx4080": "ada",
	"rtx3090ti": "ampere",
	"rtx3090": "ampere",
	"rtx3080ti": "ampere",
	"rtx3080": "ampere",
	"a100": "ampere",
	"a10": "ampere",
	"mali-g715": "valhall4",
	"mali-g710": "valhall3",
	"mali-g78": "valhall2",
	"mali-g77": "valhall1",
	"adreno-750": "adreno",
	"adreno-740": "adreno",
	"adreno-730": "adreno",
}

_PROFILES: dict[str, tuple[str, str]] = {
	"vp_android_baseline_2022": ("generic", "android_baseline_2022"),
}

_GFX_RE = re.compile(r"^gfx[0-9]{2,4}[a-z0-9]*$")
_SM_RE = re.compile(r"^sm_[0-9]{2,3}[a-z]?$")


def resolve_vulkan_target(name: str) -> TargetDetails:
	"""
	Resolve a target identifier (case-insensitive) to its details.

	Raises ConfigError for unknown identifiers.
	"""
	key = name.strip().lower()
	if key in _PROFILES:
		vendor, arch = _PROFILES[key]
		return TargetDetails(name=key, vendor=vendor, arch=arch)
	if _GFX_RE.match(key):
		return TargetDetails(name=key, vendor="amd", arch=key)
	if _SM_RE.match(key):
		return TargetDetails(name=key, vendor="nvidia", arch=key)
	code_name = _PRODUCT_NAMES.get(key, key)
	if code_name in _ARCH_NAMES:
		vendor, arch = _ARCH_NAMES[code_name]
		return TargetDetails(name=key, vendor=vendor, arch=arch)
	raise ConfigError("unknown-target", f"unknown Vulkan target '{name}'")


def executable_target(options: VulkanTargetOptions) -> ExecutableTarget:
	"""Build the executable target descriptor for `options`."""
	details = resolve_vulkan_target(options.target)
	fmt = FORMAT_INDIRECT if options.indirect_bindings else FORMAT_DIRECT
	logger.debug("executable_target", target=details.name, format=fmt)
	return ExecutableTarget(backend=BACKEND_ID, format=fmt, configuration={GPU_TARGET_CONFIG_KEY: details})


def default_device_target(options: VulkanTargetOptions) -> DeviceTarget:
	return DeviceTarget(device_id=DEVICE_ID, executable_targets=(executable_target(options),))
