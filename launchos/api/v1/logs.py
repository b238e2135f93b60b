"""Diagnostic log endpoints backing the dashboard debug console."""

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from launchos.api.deps import DiagnosticsDep
from launchos.models.log import LogEntry, LogEntryCreate, LogLevel
from launchos.utils.clock import utc_now

router = APIRouter()


@router.get("", response_model=list[LogEntry], summary="List buffered log entries")
async def get_logs(
    diagnostics: DiagnosticsDep,
    level: Annotated[LogLevel | None, Query()] = None,
) -> list[LogEntry]:
    """Buffered entries, oldest first, optionally for one level."""
    return diagnostics.get_logs(level)


@router.post(
    "",
    response_model=LogEntry,
    status_code=status.HTTP_201_CREATED,
    summary="Report a log entry",
)
async def add_log(data: LogEntryCreate, diagnostics: DiagnosticsDep) -> LogEntry:
    """Append a client-side entry to the buffer."""
    return diagnostics.log(data.level, data.message, data.context, data.data)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT, summary="Clear the log buffer")
async def clear_logs(diagnostics: DiagnosticsDep) -> None:
    diagnostics.clear_logs()


@router.get("/export", summary="Download the log buffer as JSON")
async def export_logs(diagnostics: DiagnosticsDep) -> Response:
    filename = f"launchos-logs-{utc_now().strftime('%Y%m%d-%H%M%S')}.json"
    return Response(
        content=diagnostics.export_logs(),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
