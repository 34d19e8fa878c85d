"""Results aggregation, CSV export and feedback summaries.

All functions take an already-loaded form and its responses; none of them
touch the database.
"""

import csv
import io
from collections import Counter
from datetime import datetime
from typing import Optional

from feedbackhub.schemas.api import ChoiceStats, FormStats, ScaleStats
from feedbackhub.schemas.form import (
    DEFAULT_MAX_RATING,
    NPS_MAX,
    FieldSchema,
    FieldType,
    FormSchema,
    ResponseRecord,
)
from feedbackhub.services.ai_client import AIClient, AIServiceUnavailable
from feedbackhub.services.validation import coerce_number
from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)

MISSING_ANSWER = "N/A"
NO_FEEDBACK_SUMMARY = "No textual feedback provided by users."

_CHOICE_TYPES = (FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX)


def _scale_stats(field: FieldSchema, responses: list[ResponseRecord]) -> ScaleStats:
    if field.field_type == FieldType.NPS:
        scale_min, scale_max = 0, NPS_MAX
    else:
        scale_min, scale_max = 1, field.max_rating or DEFAULT_MAX_RATING

    distribution = {str(point): 0 for point in range(scale_min, scale_max + 1)}
    scores = []
    for response in responses:
        score = coerce_number(response.answers.get(field.id))
        # Unanswered ratings are stored as 0
        if score is None or score < scale_min or score > scale_max:
            continue
        if field.field_type == FieldType.RATING and score == 0:
            continue
        scores.append(score)
        if isinstance(score, int):
            distribution[str(score)] += 1

    average = round(sum(scores) / len(scores), 2) if scores else 0.0
    return ScaleStats(
        field_id=field.id,
        label=field.label,
        scale_max=scale_max,
        average=average,
        distribution=distribution,
    )


def _choice_stats(field: FieldSchema, responses: list[ResponseRecord]) -> ChoiceStats:
    counts = Counter({value: 0 for value in field.option_values()})
    for response in responses:
        answer = response.answers.get(field.id)
        selected = answer if isinstance(answer, list) else [answer]
        for value in selected:
            if isinstance(value, str) and value:
                counts[value] += 1
    return ChoiceStats(field_id=field.id, label=field.label, counts=dict(counts))


def compute_stats(form: FormSchema, responses: list[ResponseRecord]) -> FormStats:
    """Aggregate responses per field.

    Rating and NPS fields get an average and a distribution over their
    scale; select, radio and checkbox fields get a count per option value.
    """
    stats = FormStats(form_id=form.id, total_responses=len(responses))
    for field in form.fields:
        if field.field_type in (FieldType.RATING, FieldType.NPS):
            stats.scales.append(_scale_stats(field, responses))
        elif field.field_type in _CHOICE_TYPES:
            stats.choices.append(_choice_stats(field, responses))
    return stats


def _format_cell(value) -> str:
    if value is None or value == "" or value == []:
        return MISSING_ANSWER
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def _format_timestamp(timestamp: datetime) -> str:
    return timestamp.strftime("%Y-%m-%d %H:%M:%S")


def export_csv(form: FormSchema, responses: list[ResponseRecord]) -> str:
    """Render responses as CSV text.

    Columns: ``Response ID`` (first 8 characters), one column per field
    labelled with the field text in form order, then ``Submitted At``.
    Missing answers are written as ``N/A``.
    """
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["Response ID"] + [field.label for field in form.fields] + ["Submitted At"])
    for response in responses:
        row = [response.id[:8]]
        row.extend(_format_cell(response.answers.get(field.id)) for field in form.fields)
        row.append(_format_timestamp(response.timestamp))
        writer.writerow(row)

    logger.info(f"Exported {len(responses)} responses to CSV", extra={"form_id": form.id})
    return output.getvalue()


def collect_feedback_texts(form: FormSchema, responses: list[ResponseRecord]) -> list[str]:
    """Non-blank answers to textarea fields, response by response."""
    text_field_ids = [field.id for field in form.fields if field.field_type == FieldType.TEXTAREA]
    texts = []
    for response in responses:
        for field_id in text_field_ids:
            answer = response.answers.get(field_id)
            if isinstance(answer, str) and answer.strip():
                texts.append(answer.strip())
    return texts


def summarize_responses(
    form: FormSchema,
    responses: list[ResponseRecord],
    ai_client: Optional[AIClient],
) -> tuple[str, int]:
    """Summarize a form's textual feedback with the AI service.

    When there is no textual feedback the AI service is not called.

    Returns:
        Tuple of (summary, number of feedback texts summarized)

    Raises:
        AIServiceError: If the AI request fails
        AIServiceUnavailable: If feedback exists but no AI client is configured
    """
    texts = collect_feedback_texts(form, responses)
    if not texts:
        return NO_FEEDBACK_SUMMARY, 0
    if ai_client is None:
        raise AIServiceUnavailable("AI service is not configured")
    return ai_client.summarize_feedback(texts), len(texts)
