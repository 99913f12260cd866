"""
Response formatter for user-facing chat text.

Every message the session shows about tool calls and recommendations is
built here so wording stays consistent across the stream, apply and reject
paths.
"""

from typing import Iterable

from coderelay.tools.base import ApplyResult, Recommendation, ToolCall, ToolCallKind


class ResponseFormatter:
    """Converts tool-call outcomes and apply results into chat messages."""

    REJECT_ACK = (
        "Code changes were not applied. Let me know if you need any modifications "
        "to the recommendations."
    )

    @staticmethod
    def _format_with_summary(summary: str, lines: Iterable[str]) -> str:
        detail_lines = [line for line in lines if line]
        if detail_lines:
            return "\n".join([summary] + detail_lines)
        return summary

    # ─────────────────────────────────────────────────────────
    # Tool calls
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def format_file_content(path: str, content: str) -> str:
        return f"File content for {path}:\n```\n{content}\n```"

    @staticmethod
    def format_tool_success(call: ToolCall) -> str:
        if call.kind == ToolCallKind.WRITE_FILE:
            return f"Successfully wrote to file: {call.path}"
        return f"Opened file: {call.path}"

    @staticmethod
    def format_tool_error(call: ToolCall, error: Exception | str) -> str:
        if call.kind == ToolCallKind.WRITE_FILE:
            return f"Error writing file: {error}"
        if call.kind == ToolCallKind.OPEN_FILE:
            return f"Error opening file {call.path}: {error}"
        return f"Error reading file {call.path}: {error}"

    # ─────────────────────────────────────────────────────────
    # Recommendations
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def format_recommendation_line(rec: Recommendation) -> str:
        line = f"- {rec.file_path} ({rec.language or 'text'})"
        if rec.line_numbers:
            line += f" - Lines: {', '.join(rec.line_numbers)}"
        return line

    @staticmethod
    def format_recommendation_summary(recommendations: list[Recommendation]) -> str:
        summary = "\n".join(
            ResponseFormatter.format_recommendation_line(rec) for rec in recommendations
        )
        return (
            "I've detected code recommendations for the following files:\n\n"
            f"{summary}\n\n"
            "Would you like me to apply these changes?"
        )

    @staticmethod
    def format_apply_result(result: ApplyResult) -> str:
        if result.not_found:
            return result.error or "No code recommendations found for this request."
        if result.ok:
            return f"Successfully applied changes to {result.file_path}"
        return f"Failed to apply changes to {result.file_path}: {result.error}"

    @staticmethod
    def format_apply_results(results: list[ApplyResult], batch: bool) -> str:
        """One message for an apply request; batches get a header line."""
        if not results:
            return "No code recommendations found for this request."
        if not batch or (len(results) == 1 and results[0].not_found):
            return ResponseFormatter.format_apply_result(results[0])
        return ResponseFormatter._format_with_summary(
            "Code changes applied:\n",
            (ResponseFormatter.format_apply_result(result) for result in results),
        )
