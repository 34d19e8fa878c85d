"""AI question suggestion endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from feedbackhub.middleware.auth import require_user
from feedbackhub.routes.deps import get_ai_client, get_request_guard
from feedbackhub.schemas.api import QuestionSuggestionRequest, QuestionSuggestionResponse
from feedbackhub.services.ai_client import AIClient, AIServiceError
from feedbackhub.services.guards import InFlightGuard, OperationInProgress
from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/api/ai/questions")
def suggest_questions(
    body: QuestionSuggestionRequest,
    user_id: str = Depends(require_user),
    ai_client: Optional[AIClient] = Depends(get_ai_client),
    guard: InFlightGuard = Depends(get_request_guard),
) -> dict:
    """Propose questions for a survey topic.

    One suggestion request per user runs at a time.

    Raises:
        HTTPException: 400 for a blank topic, 409 while the user's previous
            request is running, 503 when AI is not configured, 502 when the
            AI request fails
    """
    if ai_client is None:
        raise HTTPException(status_code=503, detail="AI features are not configured")

    try:
        with guard.hold(("questions", user_id)):
            questions = ai_client.suggest_questions(body.topic)
    except OperationInProgress:
        raise HTTPException(status_code=409, detail="Questions are already being generated")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AIServiceError:
        raise HTTPException(
            status_code=502,
            detail="Failed to generate questions, please try again later",
        )

    logger.info(f"Suggested {len(questions)} questions for user {user_id}")
    return QuestionSuggestionResponse(questions=questions).model_dump(by_alias=True, mode="json")
