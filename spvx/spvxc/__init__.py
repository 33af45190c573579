# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
spvx compiler-side package (`spvxc`).

Serializer modules live under this package. The CLI entrypoint is
`spvx.spvxc.spvxc:main`.
"""

__all__ = []
