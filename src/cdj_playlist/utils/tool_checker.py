"""
External tool checks

The pipelines shell out to ffmpeg, and to sox for quality inspection.
Checking for them up front gives a clear message instead of a failed
pipeline halfway through a batch.
"""

import logging
import platform
import shutil
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple


class ToolPriority(Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"


@dataclass(frozen=True)
class ToolInfo:
    """An executable the pipelines depend on"""
    name: str
    command: str
    purpose: str
    packages: Dict[str, str]    # platform.system().lower() -> install command


FFMPEG = ToolInfo(
    name="FFmpeg",
    command="ffmpeg",
    purpose="decodes tracks for tempo analysis and renders the export",
    packages={'linux': "sudo apt-get install ffmpeg", 'darwin': "brew install ffmpeg"},
)

SOX = ToolInfo(
    name="SoX",
    command="sox",
    purpose="dumps the frequency spectrum for quality inspection",
    packages={'linux': "sudo apt-get install sox", 'darwin': "brew install sox"},
)


class ToolsMissingError(Exception):
    """Raised when a required executable is not on the PATH"""

    def __init__(self, missing_tools: List[str], instructions: str = ""):
        super().__init__(f"Missing required tools: {', '.join(missing_tools)}")
        self.missing_tools = missing_tools
        self.instructions = instructions


class ToolChecker:
    """Looks the pipeline executables up on the PATH"""

    def __init__(self, quality: bool = False):
        """
        Args:
            quality: sox becomes required when quality inspection is on
        """
        self.logger = logging.getLogger(__name__)
        self.system = platform.system().lower()
        self.tools: Dict[str, Tuple[ToolInfo, ToolPriority]] = {
            FFMPEG.command: (FFMPEG, ToolPriority.REQUIRED),
            SOX.command: (SOX, ToolPriority.REQUIRED if quality else ToolPriority.OPTIONAL),
        }

    def priority(self, command: str) -> ToolPriority:
        return self.tools[command][1]

    def check_required_tools(self) -> Tuple[List[str], List[str]]:
        """
        Returns:
            (missing required commands, missing optional commands)
        """
        missing: Dict[ToolPriority, List[str]] = {p: [] for p in ToolPriority}
        for command, (info, priority) in self.tools.items():
            if shutil.which(info.command) is None:
                missing[priority].append(command)
        return missing[ToolPriority.REQUIRED], missing[ToolPriority.OPTIONAL]

    def generate_install_instructions(self, missing_tools: List[str]) -> str:
        if not missing_tools:
            return "All required tools are available."

        lines = ["Please install the following tools:", ""]
        for command in missing_tools:
            info, priority = self.tools[command]
            marker = "🔴" if priority == ToolPriority.REQUIRED else "🟢"
            install = info.packages.get(self.system, info.packages['linux'])
            lines.append(f"{marker} {info.name} ({info.command}) {info.purpose}")
            lines.append(f"   Install: {install}")
        return "\n".join(lines)

    def check_and_raise_if_missing(self):
        """
        Raises:
            ToolsMissingError: a required tool is not on the PATH
        """
        required, optional = self.check_required_tools()

        if optional:
            self.logger.info(f"Optional tools not found: {', '.join(optional)}")

        if required:
            self.logger.error(f"❌ Required tools not found: {', '.join(required)}")
            raise ToolsMissingError(required, self.generate_install_instructions(required))
