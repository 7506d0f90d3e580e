"""
Unit tests for the external tool checker.
"""

from unittest.mock import patch

import pytest

from cdj_playlist.utils.tool_checker import ToolChecker, ToolPriority, ToolsMissingError


WHICH = "cdj_playlist.utils.tool_checker.shutil.which"


def which_only(*available):
    return lambda command: f"/usr/bin/{command}" if command in available else None


class TestToolChecker:
    """Test the ToolChecker class."""

    def test_priorities(self):
        """Test that sox is only required for quality inspection."""
        assert ToolChecker().priority('sox') == ToolPriority.OPTIONAL
        assert ToolChecker(quality=True).priority('sox') == ToolPriority.REQUIRED
        assert ToolChecker().priority('ffmpeg') == ToolPriority.REQUIRED

    def test_all_available(self):
        with patch(WHICH, side_effect=which_only("ffmpeg", "sox")):
            assert ToolChecker(quality=True).check_required_tools() == ([], [])

    def test_optional_missing(self):
        """Test that a missing optional tool does not fail the check."""
        with patch(WHICH, side_effect=which_only("ffmpeg")):
            checker = ToolChecker()
            assert checker.check_required_tools() == ([], ["sox"])
            checker.check_and_raise_if_missing()

    def test_required_missing(self):
        """Test that a missing required tool raises with instructions."""
        with patch(WHICH, side_effect=which_only("ffmpeg")):
            with pytest.raises(ToolsMissingError) as info:
                ToolChecker(quality=True).check_and_raise_if_missing()

        assert info.value.missing_tools == ["sox"]
        assert "sox" in info.value.instructions
        assert "Install:" in info.value.instructions

    def test_instructions_when_nothing_missing(self):
        assert ToolChecker().generate_install_instructions([]) == "All required tools are available."
