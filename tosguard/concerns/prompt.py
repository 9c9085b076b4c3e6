"""Extraction prompts: legal-review instructions, concern taxonomy, and the JSON output contract."""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from tosguard.concerns.schema import Segment
from tosguard.llm.types import LLMMessage

PROMPT_VERSION = "tos_concerns_v1"

# Closed taxonomy: (label, what belongs there). Anything else is out of scope for the model.
CONCERN_TAXONOMY: tuple[tuple[str, str], ...] = (
    ("Data collection", "collecting personal data beyond what the service needs, tracking, biometrics, contacts"),
    ("Data usage", "using personal data for profiling, advertising, AI training or purposes unrelated to the service"),
    ("Data sharing", "sharing or selling personal data to third parties, affiliates or buyers without consent"),
    ("Data retention", "keeping data indefinitely or after account deletion, no deletion rights"),
    ("Rights waiver", "waiving statutory rights, class actions, jury trial, or granting broad licenses to user content"),
    ("Liability limitation", "disclaiming responsibility for losses, security breaches or service failures"),
    ("Arbitration and dispute resolution", "forced arbitration, foreign venue, short claim windows"),
    ("Unilateral modification", "changing terms, prices or features at any time without notice or consent"),
)

SYSTEM_MESSAGE = "You are a legal expert specializing in identifying problematic clauses in Terms of Use documents."

OUTPUT_CONTRACT = """
For each concern, provide the following in a JSON array format:

- "section": The section name or number, if available (empty string otherwise).
- "quote": The exact quote from the Terms that is concerning.
- "concern": A brief explanation of why it might deter users from signing up.

**Important Instructions:**

- **Output only the JSON array**. Do not include any explanations or additional text.
- **Ensure the JSON is properly formatted and valid**. Each object has exactly the keys "section", "quote", "concern".
- **Do not mention sections that are not problematic**. If nothing is problematic, output [].

**Example response:**

[
  {
    "section": "Section 4.2",
    "quote": "We reserve the right to share your personal data with third parties without your consent.",
    "concern": "Allows sharing of personal data without consent, which may violate user privacy expectations."
  }
]
""".strip()

FUNCTION_NOTE = (
    'Return the array by calling the report_concerns function with it as the "concerns" argument.'
)

USER_TEMPLATE = """
As a legal expert reviewing a Terms of Use document, your goal is to identify any problematic clauses that could deter users from signing up for the service. Focus only on the sections that may negatively impact user rights or privacy, or impose unreasonable restrictions. Ignore standard terms that are commonly acceptable.

Only report clauses in these categories:
{taxonomy}

{output_contract}
{segment_note}
{label}:

{segment_text}
""".strip()

SUMMARY_SYSTEM_MESSAGE = "You are a legal expert who explains Terms of Use documents in plain language."

SUMMARY_TEMPLATE = """
Summarize the following {label} in plain language for a non-lawyer. Highlight anything that limits the user's rights or privacy in these categories:
{taxonomy}
{segment_note}
{label}:

{segment_text}
""".strip()

# Function tool for structured output. Arguments mirror the JSON array contract.
REPORT_CONCERNS_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "report_concerns",
        "description": "Report problematic clauses found in the Terms of Use text.",
        "parameters": {
            "type": "object",
            "properties": {
                "concerns": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "section": {"type": "string"},
                            "quote": {"type": "string"},
                            "concern": {"type": "string"},
                        },
                        "required": ["section", "quote", "concern"],
                        "additionalProperties": False,
                    },
                },
            },
            "required": ["concerns"],
            "additionalProperties": False,
        },
    },
}
REPORT_CONCERNS_TOOL_CHOICE: dict[str, Any] = {"type": "function", "function": {"name": "report_concerns"}}


class ExtractionPrompt(BaseModel):
    """Rendered messages for one segment."""

    model_config = ConfigDict(frozen=True)

    system_message: str
    user_message: str
    segment_ordinal: int | None = None

    def to_messages(self) -> list[LLMMessage]:
        return [
            LLMMessage(role="system", content=self.system_message),
            LLMMessage(role="user", content=self.user_message),
        ]


def _taxonomy_lines() -> str:
    return "\n".join(f"- {label}: {desc}" for label, desc in CONCERN_TAXONOMY)


def _label(segment: Segment, total_segments: int) -> str:
    return f"Chunk {segment.index + 1}" if total_segments > 1 else "Terms of Use"


def _segment_note(segment: Segment, total_segments: int) -> str:
    if total_segments <= 1:
        return ""
    return (
        f"\nThis is part {segment.index + 1} of {total_segments} of a longer document; "
        "the other parts are reviewed separately. Review only the text below.\n"
    )


def build_extraction_prompt(
    segment: Segment,
    total_segments: int,
    *,
    structured_output: Literal["function", "text"] = "text",
) -> ExtractionPrompt:
    """Pure: same segment and total always render the same messages."""
    contract = OUTPUT_CONTRACT
    if structured_output == "function":
        contract = f"{OUTPUT_CONTRACT}\n\n{FUNCTION_NOTE}"
    user = USER_TEMPLATE.format(
        taxonomy=_taxonomy_lines(),
        output_contract=contract,
        segment_note=_segment_note(segment, total_segments),
        label=_label(segment, total_segments),
        segment_text=segment.text,
    )
    return ExtractionPrompt(
        system_message=SYSTEM_MESSAGE,
        user_message=user,
        segment_ordinal=segment.index if total_segments > 1 else None,
    )


def build_summary_prompt(segment: Segment, total_segments: int) -> ExtractionPrompt:
    user = SUMMARY_TEMPLATE.format(
        taxonomy=_taxonomy_lines(),
        segment_note=_segment_note(segment, total_segments),
        label=_label(segment, total_segments),
        segment_text=segment.text,
    )
    return ExtractionPrompt(
        system_message=SUMMARY_SYSTEM_MESSAGE,
        user_message=user,
        segment_ordinal=segment.index if total_segments > 1 else None,
    )
