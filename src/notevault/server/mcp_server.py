"""MCP server exposing the NoteVault engine as tools."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from mcp.server.fastmcp import FastMCP

from notevault.config import config
from notevault.exceptions import NoteVaultError
from notevault.models.schema import Note, NoteVersion
from notevault.observability import metrics, timed_operation
from notevault.server.principal import PrincipalResolver
from notevault.services.note_service import NoteService

logger = logging.getLogger(__name__)

# Characters of the body shown per note in listings
PREVIEW_LENGTH = 80


def _format_time(epoch: Optional[int]) -> str:
    if epoch is None:
        return "-"
    return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat()


def _preview(body: str) -> str:
    line = " ".join(body.split())
    if len(line) > PREVIEW_LENGTH:
        return line[:PREVIEW_LENGTH] + "..."
    return line


def _format_note_line(note: Note) -> str:
    return f"- {note.title} (ID: {note.id}, updated {_format_time(note.updated_at)})"


def _format_version_row(version: NoteVersion) -> str:
    return (
        f"| {version.sequence} | {version.id} | {version.event.value} | "
        f"{version.title} | {_format_time(version.created_at)} |"
    )


class NoteVaultMcpServer:
    """MCP server for NoteVault."""

    def __init__(self, engine=None, owner_id: Optional[str] = None):
        """Initialize the MCP server.

        Args:
            engine: Pre-configured SQLAlchemy engine. Created from the
                configuration when None.
            owner_id: Owner every tool call acts as.
                Defaults to ``config.owner_id``.
        """
        self.mcp = FastMCP(config.server_name)
        self.note_service = NoteService(engine=engine)
        self.principal = PrincipalResolver(owner_id or config.owner_id)
        self._register_tools()
        logger.info("NoteVault MCP server initialized")

    def format_error_response(self, error: Exception) -> str:
        """Format an error response in a consistent way.

        Domain errors are reported with their message. Anything else gets a
        short reference id that points at the full traceback in the log.
        """
        error_id = str(uuid.uuid4())[:8]

        if isinstance(error, NoteVaultError):
            logger.error(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            if error.retryable:
                return f"Error: {error.message} (retry the request)"
            return f"Error: {error.message}"
        elif isinstance(error, ValueError):
            logger.error(f"Validation error [{error_id}]: {str(error)}")
            return f"Error: Invalid input (ref: {error_id})"
        else:
            logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _register_tools(self) -> None:
        """Register MCP tools."""

        @self.mcp.tool(name="nv_create_note")
        def nv_create_note(title: str, body: str = "") -> str:
            """Create a new note.
            Args:
                title: Title of the note; blank becomes "Untitled"
                body: Markdown body of the note
            """
            with timed_operation("nv_create_note") as op:
                try:
                    owner = self.principal.resolve()
                    note = self.note_service.create_note(owner, title, body)
                    op["note_id"] = note.id
                    return f"Note created successfully with ID: {note.id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nv_get_note")
        def nv_get_note(note_id: str, include_deleted: bool = False) -> str:
            """Retrieve a note by ID.
            Args:
                note_id: The ID of the note
                include_deleted: Also return the note if it is soft-deleted
            """
            with timed_operation("nv_get_note", note_id=note_id) as op:
                try:
                    owner = self.principal.resolve()
                    note = self.note_service.get_note(
                        note_id, owner, include_deleted=include_deleted
                    )
                    op["found"] = True
                    result = f"# {note.title}\n"
                    result += f"ID: {note.id}\n"
                    result += f"Created: {_format_time(note.created_at)}\n"
                    result += f"Updated: {_format_time(note.updated_at)}\n"
                    if note.is_deleted:
                        result += f"Deleted: {_format_time(note.deleted_at)}\n"
                    result += f"\n{note.body}\n"
                    return result
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nv_list_notes")
        def nv_list_notes(search: Optional[str] = None) -> str:
            """List all active notes, most recently updated first.
            Args:
                search: Case-insensitive text to look for in titles and bodies
            """
            with timed_operation("nv_list_notes") as op:
                try:
                    owner = self.principal.resolve()
                    notes = self.note_service.list_notes(owner, search=search)
                    op["result_count"] = len(notes)
                    if not notes:
                        return "No notes found."
                    lines = [f"Found {len(notes)} note(s):", ""]
                    for note in notes:
                        lines.append(_format_note_line(note))
                        if note.body:
                            lines.append(f"  {_preview(note.body)}")
                    return "\n".join(lines)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nv_list_notes_page")
        def nv_list_notes_page(
            cursor: Optional[str] = None, page_size: Optional[int] = None
        ) -> str:
            """List active notes one page at a time.
            Args:
                cursor: Token from the previous page; omit for the first page
                page_size: Notes per page (default 20, max 100)
            """
            with timed_operation("nv_list_notes_page") as op:
                try:
                    owner = self.principal.resolve()
                    page = self.note_service.list_notes_page(
                        owner, cursor=cursor, page_size=page_size
                    )
                    op["result_count"] = len(page)
                    lines = [f"{len(page)} note(s) on this page:", ""]
                    lines.extend(_format_note_line(note) for note in page.items)
                    lines.append("")
                    if page.next_cursor:
                        lines.append(f"Next cursor: {page.next_cursor}")
                    else:
                        lines.append("End of list.")
                    return "\n".join(lines)
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nv_update_note")
        def nv_update_note(note_id: str, title: str, body: str = "") -> str:
            """Replace the title and body of a note. The old content is kept in its history.
            Args:
                note_id: The ID of the note
                title: New title; blank becomes "Untitled"
                body: New markdown body
            """
            with timed_operation("nv_update_note", note_id=note_id):
                try:
                    owner = self.principal.resolve()
                    note = self.note_service.update_note(note_id, owner, title, body)
                    return f"Note updated successfully: {note.id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nv_delete_note")
        def nv_delete_note(note_id: str) -> str:
            """Delete a note. It can be restored by rolling back to a version.
            Args:
                note_id: The ID of the note
            """
            with timed_operation("nv_delete_note", note_id=note_id):
                try:
                    owner = self.principal.resolve()
                    self.note_service.delete_note(note_id, owner)
                    return f"Note deleted successfully: {note_id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nv_note_history")
        def nv_note_history(note_id: str, limit: Optional[int] = None) -> str:
            """Get the version history of a note, newest first.
            Args:
                note_id: The ID of the note (deleted notes have history too)
                limit: Maximum number of versions to return (default 100)
            """
            with timed_operation("nv_note_history", note_id=note_id) as op:
                try:
                    owner = self.principal.resolve()
                    history = self.note_service.list_history(note_id, owner, limit=limit)
                    op["version_count"] = len(history)
                    if not history:
                        return f"No version history for note '{note_id}'."

                    result = f"# Version History for {note_id}\n\n"
                    result += f"**{len(history)} version(s)**\n\n"
                    result += "| # | Version | Event | Title | Recorded |\n"
                    result += "|---|---------|-------|-------|----------|\n"
                    for version in history:
                        result += _format_version_row(version) + "\n"
                    return result
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nv_get_version")
        def nv_get_version(note_id: str, version_id: str) -> str:
            """Show the content of one version of a note.
            Args:
                note_id: The ID of the note
                version_id: The ID of the version
            """
            with timed_operation("nv_get_version", note_id=note_id, version_id=version_id):
                try:
                    owner = self.principal.resolve()
                    version = self.note_service.get_version(version_id, note_id, owner)
                    result = f"# {version.title}\n"
                    result += f"Version: {version.id} (#{version.sequence})\n"
                    result += f"Event: {version.event.value}\n"
                    result += f"Note updated: {_format_time(version.source_updated_at)}\n"
                    result += f"Recorded: {_format_time(version.created_at)}\n"
                    result += f"\n{version.body}\n"
                    return result
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nv_rollback_note")
        def nv_rollback_note(note_id: str, version_id: str) -> str:
            """Restore a note to an earlier version. Also restores deleted notes.
            Args:
                note_id: The ID of the note
                version_id: The ID of the version to restore
            """
            with timed_operation(
                "nv_rollback_note", note_id=note_id, version_id=version_id
            ):
                try:
                    owner = self.principal.resolve()
                    note = self.note_service.rollback_note(note_id, owner, version_id)
                    return f"Note {note.id} rolled back to version {version_id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nv_export_note")
        def nv_export_note(note_id: str) -> str:
            """Export a note as a markdown file.
            Args:
                note_id: The ID of the note
            """
            with timed_operation("nv_export_note", note_id=note_id):
                try:
                    owner = self.principal.resolve()
                    export = self.note_service.export_note(note_id, owner)
                    return f"Filename: {export.filename}\n\n{export.content}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nv_status")
        def nv_status() -> str:
            """Get server status and per-operation metrics."""
            with timed_operation("nv_status"):
                try:
                    summary = metrics.get_summary()
                    output = "# NoteVault Status\n\n"
                    output += f"**Uptime:** {summary['uptime_seconds']:.0f}s\n"
                    output += f"**Operations:** {summary['total_operations']}\n"
                    output += f"**Errors:** {summary['total_errors']}\n"
                    output += (
                        f"**Success rate:** {summary['overall_success_rate']:.1%}\n\n"
                    )
                    op_metrics = metrics.get_metrics()
                    if op_metrics:
                        output += "| Operation | Count | Errors | Avg ms |\n"
                        output += "|-----------|-------|--------|--------|\n"
                        for name, m in sorted(op_metrics.items()):
                            output += (
                                f"| {name} | {m['count']} | {m['error_count']} | "
                                f"{m['avg_duration_ms']} |\n"
                            )
                    return output
                except Exception as e:
                    return self.format_error_response(e)

    def run(self) -> None:
        """Run the MCP server."""
        self.mcp.run()
