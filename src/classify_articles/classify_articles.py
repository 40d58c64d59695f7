"""Classification clients: live LLM backend and deterministic offline fallback."""

import logging
import os
import re
from typing import Protocol

import requests
from openai import APITimeoutError, OpenAI, OpenAIError
from pydantic import ValidationError
from requests.exceptions import RequestException

from classify_articles.instructions import CLASSIFY_ARTICLE_INSTRUCTIONS, build_article_prompt
from classify_articles.models import AnalysisOutput
from common.config import LLMConfig

logger = logging.getLogger(__name__)

TRUNCATION_SUFFIX = "...[truncated]"
OFFLINE_MODEL = "mock-llm-v1"


class ClassificationError(Exception):
    """The backend failed or returned output that does not match the schema."""


class ClassificationTimeoutError(ClassificationError):
    """The backend did not answer within its request timeout."""


class ClassificationClient(Protocol):
    def classify_and_summarize(self, text: str, title: str, topics: list[str]) -> AnalysisOutput:
        ...

    def is_available(self) -> bool:
        ...

    def model_identity(self) -> str:
        ...


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + TRUNCATION_SUFFIX


class LiveClassificationClient:
    """OpenAI-compatible chat backend (OpenAI itself, or Ollama's /v1 endpoint)."""

    def __init__(self, config: LLMConfig, client: OpenAI | None = None):
        self.config = config
        self._client = client

    @property
    def provider(self) -> str:
        return self.config.provider

    def model_identity(self) -> str:
        return self.config.model

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if self.provider == "ollama":
                self._client = OpenAI(
                    api_key="ollama",
                    base_url=f"{self.config.ollama_host.rstrip('/')}/v1",
                    timeout=self.config.timeout_seconds,
                    max_retries=0,
                )
            else:
                self._client = OpenAI(
                    api_key=os.environ.get("OPENAI_API_KEY"),
                    timeout=self.config.timeout_seconds,
                    max_retries=0,
                )
        return self._client

    def is_available(self) -> bool:
        if self.provider == "ollama":
            try:
                response = requests.get(
                    f"{self.config.ollama_host.rstrip('/')}/api/tags",
                    timeout=self.config.probe_timeout_seconds,
                )
            except RequestException as e:
                logger.info("Ollama not reachable at %s: %s", self.config.ollama_host, e)
                return False
            return response.ok
        return bool(os.environ.get("OPENAI_API_KEY"))

    def classify_and_summarize(self, text: str, title: str, topics: list[str]) -> AnalysisOutput:
        prompt = build_article_prompt(
            truncate_text(text, self.config.max_text_length),
            title,
            topics,
        )
        timeout_ms = int(self.config.timeout_seconds * 1000)

        try:
            response = self._get_client().chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": CLASSIFY_ARTICLE_INSTRUCTIONS},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                temperature=self.config.temperature,
            )
        except APITimeoutError as e:
            raise ClassificationTimeoutError(f"LLM request timed out after {timeout_ms}ms") from e
        except OpenAIError as e:
            raise ClassificationError(f"LLM request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ClassificationError("LLM returned an empty response")

        try:
            return AnalysisOutput.model_validate_json(content)
        except ValidationError as e:
            raise ClassificationError(
                f"LLM response failed schema validation ({e.error_count()} errors)"
            ) from e


class OfflineClassificationClient:
    """Deterministic rule-based stand-in for the live backend."""

    TOPIC_KEYWORDS = {
        "climate-carbon": ["climate", "carbon", "emissions", "net zero", "greenhouse"],
        "esg-regulation": ["regulation", "compliance", "disclosure", "csrd", "sec"],
        "sustainable-finance": ["green bond", "sustainable", "esg fund", "investing"],
        "social-responsibility": ["human rights", "labor", "diversity", "supply chain"],
        "corporate-governance": ["governance", "board", "executive", "shareholder"],
        "renewable-energy": ["renewable", "solar", "wind", "clean energy", "battery"],
    }

    TOPIC_DESCRIPTIONS = {
        "climate-carbon": "climate action and carbon reduction strategies",
        "esg-regulation": "ESG regulatory compliance and disclosure requirements",
        "sustainable-finance": "sustainable investment trends and green finance",
        "social-responsibility": "social impact and stakeholder welfare",
        "corporate-governance": "corporate accountability and governance practices",
        "renewable-energy": "clean energy transition and renewable technology",
    }

    URGENCY_WORDS = ("urgent", "breaking", "major", "significant", "landmark", "historic")
    REGULATORY_WORDS = ("regulation", "law", "policy")
    NUMERIC_DATA = re.compile(r"\d+%|\$\d+|\d+ billion|\d+ million")

    def model_identity(self) -> str:
        return OFFLINE_MODEL

    def is_available(self) -> bool:
        return True

    def classify_and_summarize(self, text: str, title: str, topics: list[str]) -> AnalysisOutput:
        lower_text = f"{title} {text}".lower()

        matched = [
            topic for topic in topics
            if any(keyword in lower_text for keyword in self._topic_keywords(topic))
        ]
        selected = matched[:3] if matched else topics[:1]

        return AnalysisOutput(
            relevant=bool(matched),
            topics=selected,
            importance=self._importance(lower_text),
            summary_bullets=self._summary_bullets(text, title),
            why_it_matters=self._why_it_matters(selected, title),
        )

    def _topic_keywords(self, topic: str) -> list[str]:
        return self.TOPIC_KEYWORDS.get(topic, [topic.replace("-", " ")])

    def _importance(self, lower_text: str) -> int:
        score = 50
        if any(word in lower_text for word in self.URGENCY_WORDS):
            score += 20
        if any(word in lower_text for word in self.REGULATORY_WORDS):
            score += 10
        if self.NUMERIC_DATA.search(lower_text):
            score += 10
        return min(100, max(0, score))

    def _summary_bullets(self, text: str, title: str) -> list[str]:
        sentences = [s.strip() for s in re.split(r"[.!?]+", text)]
        sentences = [s for s in sentences if 20 < len(s) < 200]

        bullets = [f"{title} represents a notable development in the ESG landscape."]
        if sentences:
            bullets.append(sentences[0] + ".")
        if len(sentences) > 2:
            bullets.append(sentences[2] + ".")
        if len(bullets) < 2:
            bullets.append("This article provides relevant context for ESG stakeholders.")
        return bullets[:4]

    def _why_it_matters(self, topics: list[str], title: str) -> str:
        context = " and ".join(self.TOPIC_DESCRIPTIONS.get(t, t) for t in topics)
        return (
            f"This article is relevant for ESG professionals tracking {context}. "
            f"\"{title}\" provides insights that may inform strategic decisions, risk assessment, "
            "and stakeholder communications. Organizations should monitor these developments for "
            "potential impacts on their sustainability initiatives and reporting obligations."
        )


def select_client(config: LLMConfig) -> ClassificationClient:
    """Pick the live backend if it answers its availability probe, else the offline client."""
    if config.provider == "offline":
        logger.info("Using offline classification client")
        return OfflineClassificationClient()

    if config.provider not in ("openai", "ollama"):
        raise ValueError(f"Unknown LLM provider: {config.provider}")

    live = LiveClassificationClient(config)
    if live.is_available():
        logger.info("Using %s classification model %s", config.provider, config.model)
        return live

    logger.warning("%s backend unavailable, falling back to offline classification", config.provider)
    return OfflineClassificationClient()
