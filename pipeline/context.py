"""
Run context: every collaborator the cleaning pipeline needs, built once at
startup and handed to the orchestrator explicitly.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from filesystem.file_ops import FileSystemOperations
from filesystem.launcher import ProcessLauncher
from filesystem.library_scanner import LibraryScanner
from media.image_tool import ImageTool
from media.tag_codec import TagCodec
from models.schemas import RepairPolicy
from utils.terminal import Terminal


@dataclass
class CleanerContext:
    policy: RepairPolicy
    terminal: Terminal
    filesystem_ops: FileSystemOperations
    scanner: LibraryScanner
    tag_codec: TagCodec
    image_tool: ImageTool
    launcher: ProcessLauncher

    @classmethod
    def build(
        cls,
        config: Dict[str, Any],
        policy: RepairPolicy,
        terminal: Terminal,
        image_tool: Optional[ImageTool] = None
    ) -> "CleanerContext":
        library = config.get('library', {})
        filesystem_ops = FileSystemOperations()

        return cls(
            policy=policy,
            terminal=terminal,
            filesystem_ops=filesystem_ops,
            scanner=LibraryScanner(filesystem_ops, policy),
            tag_codec=TagCodec(filesystem_ops),
            image_tool=image_tool or ImageTool(),
            launcher=ProcessLauncher(
                terminal,
                file_manager=library.get('file_manager'),
                text_editor=library.get('text_editor')
            ),
        )
