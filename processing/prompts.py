SUMMARY_USER_PROMPT = """Analyze the following meeting transcript. Your task is to \
perform the following actions:
1. Identify the different speakers in the transcript. If names are mentioned, \
use them. Otherwise, use generic labels like 'Speaker 1', 'Speaker 2', etc.
2. Create a concise title for the meeting. {title_hint}
3. Write a brief, one-paragraph summary of the entire meeting.
4. Create a bulleted list of the main topics discussed (detailed summary).
5. Summarize the key points for each identified speaker in a structured \
breakdown.
6. Extract all specific action items, including who is assigned, the priority, \
and the due date in YYYY-MM-DD format.

Please provide the output in a valid JSON format that adheres to the provided \
schema. Ensure all fields are populated correctly. Ignore any timestamps or \
transcription artifacts.

Transcript:
---
{transcript}
---"""

TITLE_HINT_TEMPLATE = (
    'The user has suggested "{title}", which you can use or improve.'
)

TRANSCRIPTION_PROMPT = """You are an expert audio transcription service. \
Transcribe the following audio recording. Provide only the text of the \
transcription, without any extra commentary, formatting, or labels like \
'Speaker 1'. Focus on accurately converting speech to text."""


def _string(description: str) -> dict:
    return {"type": "STRING", "description": description}


SUMMARY_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": _string(
            "A concise, descriptive title for the meeting based on its content."
        ),
        "shortSummary": _string(
            "A concise, one-paragraph summary of the entire meeting."
        ),
        "detailedSummary": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "A detailed summary of the meeting, broken down into "
                           "bullet points covering the main topics discussed.",
        },
        "actionItems": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "task": _string(
                        "A specific action item or task that was agreed upon."
                    ),
                    "assignee": _string(
                        "The name of the person responsible for the action item. "
                        "If no one is assigned, this should be 'Unassigned'."
                    ),
                    "priority": {
                        "type": "STRING",
                        "enum": ["High", "Medium", "Low"],
                        "description": "The priority of the action item, which must "
                                       "be one of 'High', 'Medium', or 'Low'.",
                    },
                    "dueDate": _string(
                        "The due date for the action item in YYYY-MM-DD format. If a "
                        "date is mentioned (e.g., 'by Friday', 'end of next week'), "
                        "infer the date. If not specified, leave as an empty string."
                    ),
                },
                "required": ["task", "assignee", "priority", "dueDate"],
            },
            "description": "A list of all action items identified in the meeting.",
        },
        "discussionBreakdown": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "speaker": _string(
                        "The identified speaker (e.g., 'Speaker 1', 'Jane Doe'). "
                        "Group all points from the same speaker together."
                    ),
                    "points": {
                        "type": "ARRAY",
                        "items": {"type": "STRING"},
                        "description": "A list of key points, arguments, or "
                                       "statements made by this speaker.",
                    },
                },
                "required": ["speaker", "points"],
            },
            "description": "A breakdown of the discussion, summarized by each speaker.",
        },
    },
    "required": [
        "title", "shortSummary", "detailedSummary", "actionItems",
        "discussionBreakdown",
    ],
}


def build_summary_prompt(transcript: str, title_hint: str = "") -> str:
    hint = TITLE_HINT_TEMPLATE.format(title=title_hint.strip()) if title_hint.strip() else ""
    return SUMMARY_USER_PROMPT.format(title_hint=hint, transcript=transcript)
