import logging

import pytest
from langchain_core.language_models import FakeListLLM

from baubericht.app.llm import (
    CLASSIFIER_TEMPLATE,
    build_classifier_chain,
    classify_report_lines,
    create_chat_llm,
    format_lines,
)


class FakeChain:
    def __init__(self, answer=None, error=None):
        self.answer = answer
        self.error = error
        self.calls = []

    def invoke(self, inputs):
        self.calls.append(inputs)
        if self.error is not None:
            raise self.error
        return self.answer


class FakeMessage:
    def __init__(self, content):
        self.content = content


def test_prompt_lists_lines():
    assert format_lines(["Rohre verlegt", " ", "Müller 8h"]) == "- Rohre verlegt\n- Müller 8h"
    rendered = CLASSIFIER_TEMPLATE.format(lines="- Rohre verlegt")
    assert '{"leistungen":[],"arbeitskraefte":[],"material":[]}' in rendered
    assert rendered.rstrip().endswith("- Rohre verlegt")


def test_classify_parses_answer():
    chain = FakeChain('```json\n{"leistungen": ["Rohre verlegt"], "arbeitskraefte": ["Müller 8h"]}\n```')
    payload = classify_report_lines(chain, ["Rohre verlegt", "Müller 8h"])
    assert payload is not None
    assert payload.leistungen == ["Rohre verlegt"]
    assert payload.arbeitskraefte == ["Müller 8h"]
    assert payload.material == []
    assert chain.calls == [{"lines": "- Rohre verlegt\n- Müller 8h"}]


def test_classify_accepts_message_objects():
    chain = FakeChain(FakeMessage('{"material": ["10; m; Rohr"]}'))
    payload = classify_report_lines(chain, ["10m Rohr"])
    assert payload.material == ["10; m; Rohr"]


@pytest.mark.parametrize(
    "chain",
    [
        FakeChain(error=RuntimeError("connection refused")),
        FakeChain(""),
        FakeChain("Ich kann das nicht."),
    ],
)
def test_classify_failures_degrade_to_none(chain, caplog):
    with caplog.at_level(logging.WARNING, logger="baubericht.llm"):
        assert classify_report_lines(chain, ["Rohre verlegt"]) is None
    assert "Report classification" in caplog.text


def test_classify_without_chain_or_lines():
    assert classify_report_lines(None, ["Rohre verlegt"]) is None
    chain = FakeChain("{}")
    assert classify_report_lines(chain, []) is None
    assert chain.calls == []


def test_lcel_chain_with_fake_llm():
    llm = FakeListLLM(responses=['{"leistungen": ["Rohre verlegt"]}'])
    chain = build_classifier_chain(llm)
    payload = classify_report_lines(chain, ["Rohre verlegt"])
    assert payload is not None
    assert payload.leistungen == ["Rohre verlegt"]


def test_create_chat_llm_validates_provider():
    with pytest.raises(ValueError):
        create_chat_llm(provider="openai", model="gpt-4o-mini", temperature=0.0, top_p=1.0, api_key=None)
    with pytest.raises(ValueError):
        create_chat_llm(provider="unknown", model="x", temperature=0.0, top_p=1.0)
