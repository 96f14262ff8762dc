"""Tests for the integration-test switch in conftest."""

from unittest.mock import MagicMock

import pytest

from conftest import pytest_collection_modifyitems


def make_item(marked: bool) -> MagicMock:
    item = MagicMock()
    item.get_closest_marker.return_value = pytest.mark.integration.mark if marked else None
    return item


def make_config(run_integration: bool) -> MagicMock:
    config = MagicMock()
    config.getoption.return_value = run_integration
    return config


class TestIntegrationSwitch:
    """Tests for skipping tests that need real AWS credentials."""

    def test_marked_tests_skipped_by_default(self):
        """Test that integration tests are skipped without the flag."""
        marked, plain = make_item(True), make_item(False)

        pytest_collection_modifyitems(make_config(False), [marked, plain])

        skip_mark = marked.add_marker.call_args.args[0]
        assert skip_mark.name == "skip"
        assert "--run-integration" in skip_mark.kwargs["reason"]
        plain.add_marker.assert_not_called()

    def test_flag_runs_marked_tests(self):
        """Test that --run-integration leaves integration tests enabled."""
        marked = make_item(True)

        pytest_collection_modifyitems(make_config(True), [marked])

        marked.add_marker.assert_not_called()
