"""Knowledge documents used to ground generated replies.

Two kinds of knowledge are supported and may be combined:

- files already uploaded through the Anthropic Files API, referenced by id
  (see ``drafter.knowledge_cli``)
- Markdown/text files from the knowledge_base/ directory at project root,
  inlined as plain-text documents
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Resolve from src/drafter/llm/ up 3 levels to project root, then into knowledge_base/
DEFAULT_KB_DIR = Path(__file__).resolve().parents[3] / "knowledge_base"

KNOWLEDGE_SUFFIXES = (".md", ".txt")


class KnowledgeDocument(BaseModel):
    """A local knowledge file loaded into memory."""

    model_config = ConfigDict(frozen=True)

    title: str
    text: str


class KnowledgeSource(BaseModel):
    """All grounding material attached to a drafting request."""

    model_config = ConfigDict(frozen=True)

    file_ids: list[str] = Field(default_factory=list)
    documents: list[KnowledgeDocument] = Field(default_factory=list)

    @property
    def uses_files_api(self) -> bool:
        return bool(self.file_ids)

    def is_empty(self) -> bool:
        return not self.file_ids and not self.documents

    def content_blocks(self) -> list[dict[str, Any]]:
        """Render the knowledge as ``document`` content blocks with citations on."""
        blocks: list[dict[str, Any]] = [
            {
                "type": "document",
                "source": {"type": "file", "file_id": file_id},
                "citations": {"enabled": True},
            }
            for file_id in self.file_ids
        ]
        for doc in self.documents:
            blocks.append(
                {
                    "type": "document",
                    "source": {"type": "text", "media_type": "text/plain", "data": doc.text},
                    "title": doc.title,
                    "citations": {"enabled": True},
                }
            )
        return blocks


def load_knowledge_documents(kb_dir: Path = DEFAULT_KB_DIR) -> list[KnowledgeDocument]:
    """Load every knowledge file in *kb_dir*.

    Files are read in name order; empty files are skipped.  A missing
    directory yields no documents.

    Args:
        kb_dir: Path to the knowledge_base directory.

    Returns:
        The loaded documents, titled by file stem.
    """
    if not kb_dir.exists():
        return []

    documents: list[KnowledgeDocument] = []
    for path in sorted(kb_dir.iterdir()):
        if path.suffix.lower() not in KNOWLEDGE_SUFFIXES or not path.is_file():
            continue
        text = path.read_text(encoding="utf-8").strip()
        if text:
            documents.append(KnowledgeDocument(title=path.stem, text=text))
    return documents


def parse_file_ids(raw: str) -> list[str]:
    """Split a comma-separated id list, dropping blanks."""
    return [part.strip() for part in raw.split(",") if part.strip()]
