import logging
import os
from textwrap import dedent
from typing import Any, Optional, Sequence

from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import PromptTemplate

from baubericht.app.utils import SectionsPayload, parse_sections_payload

logger = logging.getLogger("baubericht.llm")


def create_chat_llm(
    provider: str,
    model: str,
    temperature: float,
    top_p: float,
    api_key: str | None = None,
    base_url: str | None = None,
):
    provider = provider.lower()
    if provider == "openai":
        if not api_key:
            raise ValueError("OPENAI_API_KEY fehlt – bitte als Env-Variable setzen.")
        from langchain_openai import ChatOpenAI
        return ChatOpenAI(model=model, temperature=temperature, openai_api_key=api_key)
    elif provider == "ollama":
        from langchain_ollama import ChatOllama
        return ChatOllama(model=model, temperature=temperature, top_p=top_p, base_url=base_url)
    else:
        raise ValueError(f"Unsupported MODEL_PROVIDER: {provider}")


CLASSIFIER_TEMPLATE = dedent(
    """\
    Du bist ein Assistent fuer Baustellenberichte.
    Ordne die folgenden Zeilen in drei Kategorien ein:
    1) leistungen
    2) arbeitskraefte
    3) material

    Gib NUR JSON zurueck, ohne Markdown:
    {{"leistungen":[],"arbeitskraefte":[],"material":[]}}

    Regeln:
    - Teile Inhalte, wenn mehrere Themen in einer Zeile stehen.
    - Gib nur Inhalte zurueck, die in den Zeilen vorkommen. Erfinde nichts.
    - Wenn keine Labels vorhanden sind, nutze die Reihenfolge zur Zuordnung: zuerst leistungen, dann arbeitskraefte, dann material.
    - arbeitskraefte: Mitarbeiter/Berufsgruppe (z.B. Monteur, Installateur, Elektriker, Helfer, Team) + Stunden/Arbeitszeit/Schicht/Zeiten.
      Normalisiere das Format:
      - Anzahl: "<Anzahl> <Rolle> je <Stunden>h" (z.B. "2 Monteure je 12h", "2 Installateure je 4h")
      - Person: "<Name> <Stunden>h" (z.B. "Mueller 8h")
      - Optional Gruppe/FA: "<Gruppe>; <Name> <Stunden>h"
      - Wenn "je 4" / "je 8" ohne Einheit steht und es um arbeitskraefte geht, als Stunden verstehen und mit "h" ausgeben.
      Teile mehrere Personen in einzelne Eintraege.
    - material: Menge + Einheit + Bezeichnung. Normalisiere zu "Menge; Einheit; Bezeichnung".
      Beispiele: "10; m; Rohr", "3; Stk; Duebel", "1,5; l; Farbe".
      Wenn "Material" oder "Lieferung" erwaehnt wird, als material.
      Teile mehrere Materialien in einzelne Eintraege.
    - leistungen: ausgefuehrte Taetigkeiten ohne Personal- oder Materialangaben.
    - Wenn unklar, ordne als leistungen ein.

    Zeilen:
    {lines}
    """
)


def build_classifier_chain(llm, debug: bool = False):
    """Prompt -> LLM -> plain text; the answer is parsed by :func:`classify_report_lines`."""
    prompt = PromptTemplate(input_variables=["lines"], template=CLASSIFIER_TEMPLATE)
    chain = prompt | llm | StrOutputParser()
    if debug:
        logger.info("Classifier chain built with %s", type(llm).__name__)
    return chain


def format_lines(lines: Sequence[str]) -> str:
    return "\n".join(f"- {line}" for line in lines or [] if str(line).strip())


def classify_report_lines(chain: Any, lines: Sequence[str]) -> Optional[SectionsPayload]:
    """Ask the classifier chain for a three-bucket split of *lines*.

    Any failure (exception, empty answer, malformed JSON) is logged and
    yields ``None`` so callers fall back to the heuristics.
    """
    if chain is None or not lines:
        return None
    try:
        raw = chain.invoke({"lines": format_lines(lines)})
    except Exception as exc:
        logger.warning("Report classification failed: %s", exc)
        return None
    if hasattr(raw, "content"):
        raw = raw.content
    if not isinstance(raw, str) or not raw.strip():
        logger.warning("Report classification returned an empty answer")
        return None
    payload = parse_sections_payload(raw)
    if payload is None:
        logger.warning("Report classification returned no usable JSON: %.200s", raw)
    return payload


def classifier_chain_from_env(debug: bool = False):
    """Build the classifier chain from MODEL_PROVIDER / MODEL_CLASSIFIER / ... env vars."""
    llm = create_chat_llm(
        provider=os.getenv("MODEL_PROVIDER", "ollama"),
        model=os.getenv("MODEL_CLASSIFIER", "llama3"),
        temperature=0.0,
        top_p=0.9,
        api_key=(os.getenv("OPENAI_API_KEY") or "").strip() or None,
        base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
    )
    return build_classifier_chain(llm, debug=debug)
