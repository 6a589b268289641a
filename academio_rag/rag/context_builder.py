"""Context building for tutor prompts."""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from academio_rag.rag.retriever import RetrievedChunk

if TYPE_CHECKING:
    from academio_rag.memory.service import RetrievedMemory

MEMORY_ANSWER_CHARS = 300

MEMORY_HEADER = (
    "## MEMORIA CONVERSACIONAL (Interacciones Previas Relevantes)\n\n"
    "Las siguientes son interacciones pasadas que pueden ser relevantes para "
    "la pregunta actual del estudiante:\n\n"
)

MEMORY_FOOTER = (
    "---\n"
    "**Instrucciones de uso de memoria**:\n"
    "- Usa estas interacciones previas para mantener continuidad y evitar repeticion\n"
    "- Si el estudiante pregunta algo que ya explicaste, referencia la explicacion anterior\n"
    "- Si el estudiante vuelve a un tema, profundiza en lugar de repetir\n"
    '- Nunca menciones explicitamente que estas "recordando" - integra naturalmente\n\n'
)


class ContextBuilder:
    """Builds formatted context from retrieved passages and memories.

    Formats passages with citation markers and manages the context budget.

    Attributes:
        max_length: Maximum characters for curriculum context (default: 4000)
        min_similarity: Passages below this score are left out (default: 0.3)
    """

    def __init__(self, max_length: int = 4000, min_similarity: float = 0.3):
        """Initialize ContextBuilder.

        Args:
            max_length: Maximum context length in characters
            min_similarity: Minimum similarity for a passage to be included
        """
        self.max_length = max_length
        self.min_similarity = min_similarity

    def build_curriculum_context(self, results: List[RetrievedChunk]) -> str:
        """Build grounding context from retrieved passages.

        Formats passages with citation markers [1], [2], etc. in rank order
        and respects the max_length budget.

        Args:
            results: Retrieved passages (already ranked)

        Returns:
            Formatted context string with citation markers
        """
        passages = [r for r in results if r.similarity >= self.min_similarity]
        if not passages:
            return ""

        context_parts: List[str] = []
        current_length = 0

        for citation_id, passage in enumerate(passages, start=1):
            chunk_text = self._format_passage(citation_id, passage)

            if current_length + len(chunk_text) > self.max_length:
                remaining = self.max_length - current_length
                if remaining > 100:
                    truncated = self._truncate_passage(citation_id, passage, remaining)
                    if truncated:
                        context_parts.append(truncated)
                break

            context_parts.append(chunk_text)
            # Account for the joining blank line.
            current_length += len(chunk_text) + 2

        return "\n\n".join(context_parts)

    def build_memory_context(self, memories: List["RetrievedMemory"]) -> str:
        """Render previous interactions as a prompt block (empty when none)."""
        if not memories:
            return ""

        parts = [MEMORY_HEADER]
        for i, memory in enumerate(memories, start=1):
            relevance = round(memory.similarity * 100)
            heading = f"### Interaccion {i} (Relevancia: {relevance}%)"
            if memory.lesson_title:
                heading += f" - Leccion: {memory.lesson_title}"
            answer = memory.answer[:MEMORY_ANSWER_CHARS]
            if len(memory.answer) > MEMORY_ANSWER_CHARS:
                answer += "..."
            parts.append(
                f"{heading}\n"
                f"**Pregunta anterior**: {memory.question}\n"
                f"**Tu respuesta**: {answer}\n\n"
            )
        parts.append(MEMORY_FOOTER)
        return "".join(parts)

    def _heading(self, citation_id: int, passage: RetrievedChunk) -> str:
        meta = passage.as_chunk_metadata()
        heading = f"[{citation_id}] **{meta.source_title or meta.source_file}**"
        details = [d for d in (meta.group_label, f"p. {meta.source_page}") if d]
        return f"{heading} ({', '.join(details)})"

    def _format_passage(self, citation_id: int, passage: RetrievedChunk) -> str:
        return f"{self._heading(citation_id, passage)}\n{passage.text.strip()}"

    def _truncate_passage(
        self, citation_id: int, passage: RetrievedChunk, max_chars: int
    ) -> str | None:
        """Truncate a passage to fit within budget.

        Returns:
            Truncated passage text or None if it can't fit
        """
        heading = self._heading(citation_id, passage)
        available = max_chars - len(heading) - 4

        if available < 50:
            return None

        content = passage.text.strip()
        truncated = content[:available]
        if len(content) > available:
            truncated += "..."
        return f"{heading}\n{truncated}"
