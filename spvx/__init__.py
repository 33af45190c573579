# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
spvx package: SPIR-V executable serialization for GPU targets.

  spvxc: serializer for compiled program variants (container writer/reader,
         target configuration, CLI driver)
"""

__all__ = ["spvxc"]
