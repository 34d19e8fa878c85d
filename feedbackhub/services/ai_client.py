"""AI text service client for question suggestion and feedback summaries.

Both operations are single-shot chat completion calls. Failures surface as
AIServiceError; nothing is retried.
"""

import json
from typing import Optional

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from feedbackhub.config import Settings
from feedbackhub.schemas.api import SuggestedQuestion
from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)

SUGGEST_SYSTEM_PROMPT = (
    "You are an expert survey designer. Given a topic, propose 3 to 7 clear, "
    "unbiased survey questions. Respond with a JSON object of the form "
    '{"questions": [{"label": str, "type": str, "options": [{"label": str, "value": str}]}]}. '
    "type must be one of: text, textarea, select, radio, checkbox, rating, nps, "
    "date, email, number. Include options only for select, radio and checkbox."
)

SUMMARY_SYSTEM_PROMPT = (
    "You summarize customer feedback. Identify the main themes, the overall "
    "sentiment and the most actionable suggestions in one short paragraph."
)


class AIServiceError(Exception):
    """Raised when the AI text service fails or returns unusable output."""
    pass


class AIServiceUnavailable(AIServiceError):
    """Raised when AI features are used but no AI service is configured."""
    pass


class AIClient:
    """Client for the hosted generative model.

    Usage:
        client = AIClient.from_settings(get_settings())
        questions = client.suggest_questions("onboarding experience")
        summary = client.summarize_feedback(["Great support", "Slow app"])
    """

    def __init__(self, client: OpenAI, model: str, temperature: float = 0.2):
        """Initialize AI client.

        Args:
            client: OpenAI SDK client (or any object with the same
                ``chat.completions.create`` interface)
            model: Model name
            temperature: Sampling temperature
        """
        self.client = client
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["AIClient"]:
        """Build a client from settings.

        Returns:
            AIClient, or None when no API key is configured
        """
        if not settings.ai_enabled:
            logger.warning("OPENAI_API_KEY not set; AI features disabled")
            return None
        client = OpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.openai_timeout,
            max_retries=0,
        )
        return cls(client, model=settings.openai_model)

    def _complete(self, system: str, user: str, json_output: bool = False) -> str:
        """Send one chat completion request and return the message text."""
        kwargs = {}
        if json_output:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                **kwargs,
            )
        except OpenAIError as e:
            logger.error(f"AI request failed: {type(e).__name__}: {e}")
            raise AIServiceError("The AI service request failed") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            logger.error("AI service returned an empty response")
            raise AIServiceError("The AI service returned an empty response")
        return content.strip()

    def suggest_questions(self, topic: str) -> list[SuggestedQuestion]:
        """Propose survey questions for a topic.

        Suggestions the model returns in an unusable shape (unknown type,
        missing label) are skipped.

        Args:
            topic: Survey topic

        Returns:
            Suggested questions; may be empty

        Raises:
            ValueError: If topic is blank
            AIServiceError: If the request fails or the reply is not JSON
        """
        topic = topic.strip()
        if not topic:
            raise ValueError("Topic must not be blank")

        raw = self._complete(SUGGEST_SYSTEM_PROMPT, f"Topic: {topic}", json_output=True)
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"AI question reply is not valid JSON: {e}")
            raise AIServiceError("The AI service returned malformed questions") from e

        items = payload.get("questions", []) if isinstance(payload, dict) else []
        if not isinstance(items, list):
            items = []
        questions = []
        for item in items:
            try:
                questions.append(SuggestedQuestion.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping unusable suggested question: {e.error_count()} error(s)")

        logger.info(f"AI suggested {len(questions)} questions")
        return questions

    def summarize_feedback(self, texts: list[str]) -> str:
        """Summarize free-text feedback.

        Args:
            texts: Non-empty list of feedback texts

        Returns:
            Summary paragraph

        Raises:
            ValueError: If texts is empty
            AIServiceError: If the request fails
        """
        if not texts:
            raise ValueError("No feedback to summarize")

        bullet_list = "\n".join(f"- {text.strip()}" for text in texts)
        summary = self._complete(
            SUMMARY_SYSTEM_PROMPT,
            f"Summarize the following {len(texts)} feedback responses:\n{bullet_list}",
        )
        logger.info(f"Summarized {len(texts)} feedback responses")
        return summary
