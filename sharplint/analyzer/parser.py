"""Tree-sitter parser for C# compilation units."""
from pathlib import Path
from typing import Optional
from tree_sitter import Language, Parser, Tree
import tree_sitter_c_sharp as tscsharp


class LanguageParser:
    """C# parser using the tree-sitter v0.22+ API."""

    SUPPORTED_EXTENSIONS = {
        '.cs': 'csharp',
    }

    def __init__(self, language: str = 'csharp'):
        """Initialize parser for the given language.

        Args:
            language: Only 'csharp' is supported

        Raises:
            ValueError: If language is not supported
        """
        self.language = language
        self.parser = self._create_parser()

    def _create_parser(self) -> Parser:
        """Build the tree-sitter parser.

        Returns:
            Configured Parser instance

        Raises:
            ValueError: If language is not supported
        """
        if self.language != 'csharp':
            raise ValueError(f"Unsupported language: {self.language}")

        # v0.22+ API: Language wraps the grammar capsule, Parser takes the language
        return Parser(Language(tscsharp.language()))

    def parse_source(self, source_code: bytes | str) -> Tree:
        """Parse in-memory source code.

        Args:
            source_code: C# source as bytes or str

        Returns:
            Parsed Tree (may contain ERROR nodes for malformed input)
        """
        if isinstance(source_code, str):
            source_code = source_code.encode('utf-8')
        return self.parser.parse(source_code)

    @classmethod
    def from_file_extension(cls, file_path: str | Path) -> Optional['LanguageParser']:
        """Create parser based on file extension.

        Args:
            file_path: Path to determine language from

        Returns:
            LanguageParser instance, or None if extension not supported
        """
        language = cls.SUPPORTED_EXTENSIONS.get(Path(file_path).suffix.lower())
        if language:
            return cls(language)
        return None
