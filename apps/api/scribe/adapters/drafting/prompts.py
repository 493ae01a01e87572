"""Prompt text for each clinical note format."""

from scribe.schemas.job import NoteType

NOTE_SECTIONS: dict[NoteType, tuple[str, ...]] = {
    NoteType.SOAP: ("Subjective", "Objective", "Assessment", "Plan"),
    NoteType.DAP: ("Data", "Assessment", "Plan"),
    NoteType.BIRP: ("Behavior", "Intervention", "Response", "Plan"),
    NoteType.GIRP: ("Goals", "Intervention", "Response", "Plan"),
    NoteType.INTAKE: (
        "Presenting Problem",
        "History",
        "Mental Status Exam",
        "Clinical Impressions",
        "Recommendations",
    ),
    NoteType.PROGRESS: (
        "Session Focus",
        "Interventions Used",
        "Client Response",
        "Progress Toward Goals",
        "Plan",
    ),
}

NOTE_LABELS: dict[NoteType, str] = {
    NoteType.SOAP: "SOAP Note",
    NoteType.DAP: "DAP Note",
    NoteType.BIRP: "BIRP Note",
    NoteType.GIRP: "GIRP Note",
    NoteType.INTAKE: "Intake/Assessment",
    NoteType.PROGRESS: "Progress Note",
}

_GUIDELINES = """IMPORTANT GUIDELINES:
- Use clear, objective clinical language
- Be concise but thorough
- Include relevant clinical observations
- Note any risk factors or safety concerns
- Use proper mental health terminology"""


def build_note_prompt(transcript: str, note_type: NoteType) -> str:
    label = NOTE_LABELS[note_type]
    headings = "\n".join(f"## {section}" for section in NOTE_SECTIONS[note_type])
    return (
        "You are a clinical documentation assistant for mental health professionals.\n"
        f"Generate a professional {label} from the following therapy session transcript.\n\n"
        f"FORMAT: use these exact section headings:\n{headings}\n\n"
        f"{_GUIDELINES}\n\n"
        f"TRANSCRIPT:\n{transcript}\n\n"
        f"Generate a {label} in markdown format:"
    )
