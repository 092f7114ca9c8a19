"""LLM-based IELTS writing and speaking evaluation."""

import json

import structlog
from openai import AsyncOpenAI

from ielts_mock_test.assessment.band_score import round_to_ielts_band
from ielts_mock_test.models.evaluation import (
    SpeakingAnswer,
    SpeakingEvaluation,
    SpeakingResponseEvaluation,
    WritingEvaluation,
    WritingTaskEvaluation,
)

logger = structlog.get_logger()

MIN_ANSWER_CHARS = 50
TASK1_WEIGHT = 0.33
TASK2_WEIGHT = 0.67

FEEDBACK_UNAVAILABLE = "Unable to provide detailed feedback due to evaluation error."
EVALUATION_ERROR_ADVICE = (
    "There was an error in the evaluation process. "
    "Please contact support if this persists."
)

BAND_GUIDELINES = """\
Use the full IELTS band scale from 1-9. Award 7, 8 or 9 when the response truly \
demonstrates that level.
- Band 9: Expert user (exceptional command)
- Band 8: Very good user (fully operational command)
- Band 7: Good user (operational command with occasional inaccuracies)
- Band 6: Competent user (effective command despite some inaccuracies)
- Band 5: Modest user (partial command with frequent problems)
- Band 4 and below: Limited to non-user
"""

WRITING_SYSTEM_PROMPT = """\
You are an expert IELTS examiner. Evaluate the candidate's IELTS Writing Task {task} \
response against the official assessment criteria, each weighted 25%:

1. **{first_criterion}**: {first_description}
2. **coherenceCohesion**: logical organisation, progression, cohesive devices, paragraphing.
3. **lexicalResource**: range and accuracy of vocabulary, less common words, spelling.
4. **grammaticalRange**: variety and accuracy of structures, complex sentences, punctuation.

{guidelines}
Respond ONLY with a JSON object:
{{
    "{first_criterion}": <1-9>,
    "coherenceCohesion": <1-9>,
    "lexicalResource": <1-9>,
    "grammaticalRange": <1-9>,
    "overallBand": <average to the nearest 0.5>,
    "wordCount": <word count>,
    "detailedFeedback": {{"<criterion>": "<feedback>"}},
    "strengths": ["<strength>", "..."],
    "improvements": ["<improvement>", "..."],
    "advice": "<overall advice>"
}}
"""

TASK_CRITERIA = {
    1: (
        "taskAchievement",
        "covers all requirements, gives a clear overview of main trends, "
        "highlights key features accurately.",
    ),
    2: (
        "taskResponse",
        "addresses all parts of the task, holds a clear position, "
        "extends and supports ideas.",
    ),
}

SPEAKING_SYSTEM_PROMPT = """\
You are an expert IELTS speaking examiner. Evaluate the candidate's answers against \
the official criteria, each weighted 25%: fluency and coherence, lexical resource, \
grammatical range and accuracy, pronunciation (judged from transcript artifacts).

{guidelines}
Respond ONLY with a JSON object:
{{
    "overallBand": <average to the nearest 0.5>,
    "responses": [
        {{
            "question": "<question>",
            "fluency": <1-9>,
            "coherence": <1-9>,
            "lexicalResource": <1-9>,
            "grammaticalRange": <1-9>,
            "pronunciation": <1-9>,
            "overallBand": <1-9>,
            "feedback": "<feedback>",
            "strengths": ["<strength>"],
            "improvements": ["<improvement>"]
        }}
    ],
    "detailedFeedback": {{"<criterion>": "<feedback>"}},
    "overallStrengths": ["<strength>"],
    "overallImprovements": ["<improvement>"],
    "advice": "<overall advice>"
}}
"""


def _word_count(text: str) -> int:
    return len(text.split())


def _incomplete_task(answer: str, task: int) -> WritingTaskEvaluation:
    """Band 1 for answers too short to assess; no API call is made."""
    first_criterion = "task_achievement" if task == 1 else "task_response"
    return WritingTaskEvaluation(
        **{first_criterion: 1.0},
        coherence_cohesion=1.0,
        lexical_resource=1.0,
        grammatical_range=1.0,
        overall_band=1.0,
        word_count=_word_count(answer),
        detailed_feedback={
            "overall": (
                f"Task {task} appears to be incomplete or too short. "
                "Please provide a more comprehensive response."
            )
        },
    )


def _fallback_task(answer: str, task: int) -> WritingTaskEvaluation:
    first_criterion = "task_achievement" if task == 1 else "task_response"
    return WritingTaskEvaluation(
        **{first_criterion: 5.0},
        coherence_cohesion=5.0,
        lexical_resource=5.0,
        grammatical_range=5.0,
        overall_band=5.0,
        word_count=_word_count(answer),
        detailed_feedback={
            criterion: FEEDBACK_UNAVAILABLE
            for criterion in (
                first_criterion, "coherence_cohesion", "lexical_resource", "grammatical_range",
            )
        },
        strengths=["Response submitted successfully"],
        improvements=["Please try submitting again for detailed feedback"],
        advice=EVALUATION_ERROR_ADVICE,
        error="Evaluation error occurred",
    )


def _fallback_speaking(answers: list[SpeakingAnswer]) -> SpeakingEvaluation:
    return SpeakingEvaluation(
        overall_band=6.0,
        responses=[
            SpeakingResponseEvaluation(
                question=a.question,
                feedback=FEEDBACK_UNAVAILABLE,
                strengths=["Response submitted successfully"],
                improvements=["Please try submitting again for detailed feedback"],
            )
            for a in answers
        ],
        detailed_feedback={
            criterion: FEEDBACK_UNAVAILABLE
            for criterion in (
                "fluency", "coherence", "lexical_resource", "grammatical_range", "pronunciation",
            )
        },
        overall_strengths=["Responses submitted successfully"],
        overall_improvements=["Please try submitting again for detailed feedback"],
        advice=EVALUATION_ERROR_ADVICE,
        error="Evaluation error occurred",
    )


def combine_task_bands(task1: float | None, task2: float | None) -> float | None:
    """Overall writing band; task 2 carries about two thirds of the weight."""
    if task1 is not None and task2 is not None:
        return round_to_ielts_band(task1 * TASK1_WEIGHT + task2 * TASK2_WEIGHT)
    if task1 is not None:
        return task1
    return task2


class IELTSEvaluator:
    """Scores writing and speaking on the IELTS band scale using an LLM.

    Failed calls never propagate: the caller gets a fallback evaluation
    with ``error`` set so the mock test can continue.

    Args:
        api_key: OpenAI API key.
        model: Model to use for evaluation.
    """

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model

    async def _complete_json(self, system_prompt: str, user_content: str) -> dict:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            temperature=0.3,
            response_format={"type": "json_object"},
        )
        return json.loads(response.choices[0].message.content)

    async def _evaluate_task(self, answer: str, prompt: str, task: int) -> WritingTaskEvaluation:
        if len(answer.strip()) < MIN_ANSWER_CHARS:
            return _incomplete_task(answer, task)

        first_criterion, first_description = TASK_CRITERIA[task]
        system_prompt = WRITING_SYSTEM_PROMPT.format(
            task=task,
            first_criterion=first_criterion,
            first_description=first_description,
            guidelines=BAND_GUIDELINES,
        )
        try:
            result = await self._complete_json(
                system_prompt, f"Task {task} prompt:\n{prompt}\n\nCandidate response:\n{answer}"
            )
            logger.info("writing_evaluation_complete", task=task, band=result.get("overallBand"))
            return WritingTaskEvaluation.model_validate(result)
        except Exception:
            logger.exception("llm_evaluation_failed", kind="writing", task=task)
            return _fallback_task(answer, task)

    async def evaluate_writing(
        self,
        task1_answer: str | None = None,
        task2_answer: str | None = None,
        task1_prompt: str = "",
        task2_prompt: str = "",
    ) -> WritingEvaluation:
        """Evaluate one or both writing tasks.

        Raises:
            ValueError: if neither answer is given.
        """
        if not task1_answer and not task2_answer:
            raise ValueError("At least one task answer is required")

        task1 = await self._evaluate_task(task1_answer, task1_prompt, 1) if task1_answer else None
        task2 = await self._evaluate_task(task2_answer, task2_prompt, 2) if task2_answer else None
        return WritingEvaluation(
            task1=task1,
            task2=task2,
            band_score=combine_task_bands(
                task1.overall_band if task1 else None,
                task2.overall_band if task2 else None,
            ),
        )

    async def evaluate_speaking(self, answers: list[SpeakingAnswer]) -> SpeakingEvaluation:
        """Evaluate transcribed speaking answers.

        Raises:
            ValueError: if ``answers`` is empty.
        """
        if not answers:
            raise ValueError("Responses array is required")

        formatted = "\n\n".join(
            f"Question {i}: {a.question}\nAnswer: {a.transcript}"
            for i, a in enumerate(answers, start=1)
        )
        try:
            result = await self._complete_json(
                SPEAKING_SYSTEM_PROMPT.format(guidelines=BAND_GUIDELINES),
                f"Speaking test responses:\n{formatted}",
            )
            logger.info("speaking_evaluation_complete", band=result.get("overallBand"))
            return SpeakingEvaluation.model_validate(result)
        except Exception:
            logger.exception("llm_evaluation_failed", kind="speaking")
            return _fallback_speaking(answers)
