import re

from errors import InvalidInputError
from processing.models import PRIORITIES, ActionItem, SummaryResult

ALL_PRIORITIES = "All"
PRIORITY_FILTERS = (ALL_PRIORITIES,) + PRIORITIES

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def filter_action_items(items, priority: str = ALL_PRIORITIES) -> list[ActionItem]:
    if priority not in PRIORITY_FILTERS:
        raise InvalidInputError(f"Unknown priority filter: {priority}")
    if priority == ALL_PRIORITIES:
        return list(items)
    return [item for item in items if item.priority == priority]


def format_due_date(due_date: str) -> str:
    # Se muestra la fecha literal, sin ajustes de zona horaria
    return due_date or "N/A"


def notification_text(item: ActionItem) -> str:
    return (
        f'Reminder: The task "{item.task}" is assigned to {item.assignee}. '
        f"Priority: {item.priority}. Due date: {format_due_date(item.due_date)}."
    )


def speech_text(result: SummaryResult) -> str:
    return f"Summary: {result.short_summary}"


def render_view(result: SummaryResult, priority: str = ALL_PRIORITIES) -> dict:
    payload = result.to_payload()
    items = filter_action_items(result.action_items, priority)
    payload["actionItems"] = [
        {**item.model_dump(by_alias=True), "dueDateDisplay": format_due_date(item.due_date)}
        for item in items
    ]
    payload["actionItemCount"] = len(result.action_items)
    payload["filter"] = priority
    return payload


def render_markdown(result: SummaryResult) -> str:
    """Genera el documento de exportacion con el orden de secciones fijo."""
    detailed = "\n".join(f"- {point}" for point in result.detailed_summary)
    breakdown = "\n\n".join(
        f"### {discussion.speaker}\n" + "\n".join(f"- {point}" for point in discussion.points)
        for discussion in result.discussion_breakdown
    )
    actions = "\n".join(
        f"- [ ] {item.task} (Assignee: {item.assignee}, Priority: {item.priority}, "
        f"Due: {format_due_date(item.due_date)})"
        for item in result.action_items
    )
    content = (
        f"# Meeting Summary: {result.title}\n\n"
        f"## Short Summary\n{result.short_summary}\n\n"
        f"## Detailed Summary\n{detailed}\n\n"
        f"## Discussion Breakdown\n{breakdown}\n\n"
        f"## Action Items\n{actions}"
    )
    return content.strip()


def export_filename(title: str) -> str:
    stem = _UNSAFE_FILENAME_CHARS.sub("", re.sub(r"\s", "_", title or ""))
    stem = stem.strip("._")
    return f"{stem or 'meeting'}_summary.md"
