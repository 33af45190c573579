# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Target configuration for the Vulkan/SPIR-V backend."""

from .vulkan import (
	DeviceTarget,
	ExecutableTarget,
	TargetDetails,
	VulkanTargetOptions,
	default_device_target,
	executable_target,
	resolve_vulkan_target,
)

__all__ = [
	"DeviceTarget",
	"ExecutableTarget",
	"TargetDetails",
	"VulkanTargetOptions",
	"default_device_target",
	"executable_target",
	"resolve_vulkan_target",
]
