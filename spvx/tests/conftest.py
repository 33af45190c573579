# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_structlog():
	"""
	The CLI configures structlog globally (bound to the current stderr); reset
	after each test so later tests never log into a closed capture stream.
	"""
	yield
	structlog.reset_defaults()
