"""Prompt builder: determinism, taxonomy, output contract, segment labelling."""
from tosguard.concerns.prompt import (
    CONCERN_TAXONOMY,
    FUNCTION_NOTE,
    SYSTEM_MESSAGE,
    build_extraction_prompt,
    build_summary_prompt,
)
from tosguard.concerns.schema import Segment


def _seg(index: int = 0, text: str = "You waive your right to a jury trial.") -> Segment:
    return Segment(index=index, start_offset=0, end_offset=len(text), text=text)


def test_prompt_is_deterministic() -> None:
    assert build_extraction_prompt(_seg(), 1) == build_extraction_prompt(_seg(), 1)


def test_prompt_states_output_contract_and_taxonomy() -> None:
    prompt = build_extraction_prompt(_seg(), 1)
    assert prompt.system_message == SYSTEM_MESSAGE
    for key in ('"section"', '"quote"', '"concern"'):
        assert key in prompt.user_message
    assert "Output only the JSON array" in prompt.user_message
    for label, _ in CONCERN_TAXONOMY:
        assert label in prompt.user_message
    assert "Ignore standard terms" in prompt.user_message
    assert prompt.user_message.endswith("You waive your right to a jury trial.")


def test_single_segment_labelled_as_terms() -> None:
    prompt = build_extraction_prompt(_seg(), 1)
    assert "Terms of Use:" in prompt.user_message
    assert "part 1 of" not in prompt.user_message
    assert prompt.segment_ordinal is None


def test_multi_segment_states_position() -> None:
    prompt = build_extraction_prompt(_seg(index=1), 3)
    assert "Chunk 2:" in prompt.user_message
    assert "part 2 of 3" in prompt.user_message
    assert prompt.segment_ordinal == 1


def test_function_mode_adds_function_note() -> None:
    assert FUNCTION_NOTE not in build_extraction_prompt(_seg(), 1).user_message
    assert FUNCTION_NOTE in build_extraction_prompt(_seg(), 1, structured_output="function").user_message


def test_segment_text_with_braces_is_kept_verbatim() -> None:
    text = 'Clause {4}: see "Annex {A}".'
    prompt = build_extraction_prompt(_seg(text=text), 1)
    assert prompt.user_message.endswith(text)


def test_to_messages_roles() -> None:
    messages = build_extraction_prompt(_seg(), 1).to_messages()
    assert [m.role for m in messages] == ["system", "user"]


def test_summary_prompt_mentions_label() -> None:
    prompt = build_summary_prompt(_seg(index=0), 2)
    assert "Chunk 1" in prompt.user_message
    assert "plain language" in prompt.user_message
