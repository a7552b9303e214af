"""AI Responder for custom application questions."""

import logging
import re

from langfuse.decorators import observe

from autoapply.ai.completion import ChatMessage, CompletionClient, get_completion_client
from autoapply.config import Settings, settings as default_settings
from autoapply.exceptions import CompletionError
from autoapply.handlers.models import CHOICE_KINDS, CustomQuestion, FieldKind
from autoapply.models import ApplicantProfile, JobContext
from autoapply.utils.options import (
    affirmative_option,
    find_option,
    first_usable_option,
    match_option,
    negative_option,
    pick_years_option,
    usable_options,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert at answering job application questions on behalf of a candidate.

Guidelines:
- Answer in the first person, as the candidate
- Use only the candidate information provided; never invent experience or credentials
- Be specific, professional and concise
- Return only the answer text, with no preamble or quotation marks"""

CHOICE_SYSTEM_PROMPT = """You help candidates pick answers on job application forms.
Reply with the number of the single best option and nothing else."""

# Choice-question shortcuts, checked in this order
WORK_AUTH_PATTERN = re.compile(
    r"authori[sz]ed to work|work authori[sz]ation|legally (?:authori[sz]ed|eligible|permitted)|"
    r"eligible to work|right to work",
    re.IGNORECASE,
)
SPONSORSHIP_PATTERN = re.compile(r"sponsor|visa", re.IGNORECASE)
# "Will you require sponsorship" is a sponsorship question even when it mentions work authorization
REQUIRES_SPONSORSHIP_PATTERN = re.compile(r"\b(?:require|need)s?\b.{0,40}\b(?:sponsor|visa)", re.IGNORECASE)
YEARS_PATTERN = re.compile(r"years.*experience|experience.*years|how many years", re.IGNORECASE)
RELOCATION_PATTERN = re.compile(r"relocat", re.IGNORECASE)
START_PATTERN = re.compile(r"when.*start|start\s*date|availab|notice period", re.IGNORECASE)
HEARD_PATTERN = re.compile(r"how did you hear|hear about|where did you (?:find|see)|\bsource\b|referr", re.IGNORECASE)

IMMEDIATE_OPTION = re.compile(r"immediate|asap|as soon as|right away|\bnow\b", re.IGNORECASE)
REMOTE_OPTION = re.compile(r"remote", re.IGNORECASE)
ONLINE_SOURCE_OPTION = re.compile(
    r"linkedin|job board|online|website|internet|indeed|glassdoor|search", re.IGNORECASE
)

YES_NO = ["Yes", "No"]


class AIResponder:
    """Answers custom questions from the applicant profile and job context.

    Choice questions go through rule shortcuts first and only reach the
    completion backend when no rule finds an option. Free-text questions
    always make exactly one completion call and fall back to canned,
    profile-aware answers when the backend fails.
    """

    def __init__(self, client: CompletionClient | None = None, settings: Settings | None = None):
        self.settings = settings or default_settings
        self._client = client
        self._client_error: str | None = None

    @property
    def client(self) -> CompletionClient | None:
        """Completion client, created from settings on first use."""
        if self._client is None and self._client_error is None:
            try:
                self._client = get_completion_client(self.settings)
            except CompletionError as e:
                self._client_error = str(e)
                logger.warning(f"No completion backend available, using default answers: {e}")
        return self._client

    @observe()
    async def generate_responses(
        self,
        questions: list[CustomQuestion],
        profile: ApplicantProfile,
        job: JobContext,
        cover_letter_text: str | None = None,
    ) -> dict[str, str]:
        """Answer every custom question.

        Args:
            questions: Custom questions discovered on the form
            profile: Applicant profile
            job: Target posting
            cover_letter_text: Optional cover letter to draw on

        Returns:
            Dict mapping question text to answer
        """
        responses: dict[str, str] = {}
        for question in questions:
            if question.question in responses:
                continue
            options = self._choice_options(question)
            if options:
                answer = await self.answer_choice(question, options, profile, job)
            else:
                answer = await self.answer_text(question, profile, job, cover_letter_text)
            if answer:
                responses[question.question] = answer

        logger.info(f"Generated {len(responses)} answers for {len(questions)} custom questions")
        return responses

    @staticmethod
    def _choice_options(question: CustomQuestion) -> list[str]:
        if question.kind not in CHOICE_KINDS:
            return []
        if question.kind == FieldKind.CHECKBOX and not question.options:
            return YES_NO
        return usable_options(question.options)

    # ------------------------------------------------------------------
    # Choice questions
    # ------------------------------------------------------------------

    async def answer_choice(
        self,
        question: CustomQuestion,
        options: list[str],
        profile: ApplicantProfile,
        job: JobContext,
    ) -> str | None:
        """Pick one option, by rule if possible, otherwise by completion."""
        shortcut = self.rule_based_choice(question.question, options, profile)
        if shortcut:
            logger.debug(f"Rule-based answer for '{question.question}': {shortcut}")
            return shortcut
        return await self._ai_choice(question.question, options, profile, job)

    @staticmethod
    def rule_based_choice(question: str, options: list[str], profile: ApplicantProfile) -> str | None:
        """Answer common screening questions without a completion call.

        A rule only applies when it finds a matching option; otherwise the
        next rule is tried.
        """
        if WORK_AUTH_PATTERN.search(question) and not REQUIRES_SPONSORSHIP_PATTERN.search(question):
            picked = affirmative_option(options) if profile.work_authorized else negative_option(options)
            if picked:
                return picked

        if SPONSORSHIP_PATTERN.search(question):
            picked = affirmative_option(options) if profile.requires_sponsorship else negative_option(options)
            if picked:
                return picked

        if YEARS_PATTERN.search(question):
            picked = pick_years_option(options, profile.years_of_experience)
            if picked:
                return picked

        if RELOCATION_PATTERN.search(question):
            if profile.willing_to_relocate:
                picked = affirmative_option(options)
            else:
                picked = negative_option(options) or find_option(options, REMOTE_OPTION)
            if picked:
                return picked

        if START_PATTERN.search(question):
            picked = None
            if profile.available_start_date:
                picked = match_option(options, profile.available_start_date)
            picked = picked or find_option(options, IMMEDIATE_OPTION)
            if picked:
                return picked

        if HEARD_PATTERN.search(question):
            picked = None
            if profile.heard_about_source:
                picked = match_option(options, profile.heard_about_source)
            picked = picked or find_option(options, ONLINE_SOURCE_OPTION)
            if picked:
                return picked

        return None

    async def _ai_choice(
        self,
        question: str,
        options: list[str],
        profile: ApplicantProfile,
        job: JobContext,
    ) -> str | None:
        fallback = first_usable_option(options)
        client = self.client
        if client is None:
            return fallback

        numbered = "\n".join(f"{i}. {option}" for i, option in enumerate(options, start=1))
        prompt = f"""Job: {job.title} at {job.company}

Candidate:
{self._condensed_profile(profile)}

Question: {question}

Options:
{numbered}

Which option number best fits the candidate?"""

        try:
            reply = await client.complete(
                [ChatMessage(role="system", content=CHOICE_SYSTEM_PROMPT), ChatMessage(role="user", content=prompt)],
                temperature=0.0,
                max_tokens=10,
            )
        except CompletionError as e:
            logger.warning(f"Option selection failed for '{question}': {e}")
            return fallback

        match = re.search(r"\d+", reply)
        if not match:
            logger.warning(f"No option number in reply for '{question}': {reply!r}")
            return fallback

        index = max(0, min(int(match.group()) - 1, len(options) - 1))
        return options[index]

    # ------------------------------------------------------------------
    # Free-text questions
    # ------------------------------------------------------------------

    async def answer_text(
        self,
        question: CustomQuestion,
        profile: ApplicantProfile,
        job: JobContext,
        cover_letter_text: str | None = None,
    ) -> str:
        """Draft a free-text answer, never returning an empty string."""
        max_words = (
            self.settings.textarea_answer_max_words
            if question.kind == FieldKind.TEXTAREA
            else self.settings.short_answer_max_words
        )

        client = self.client
        answer = ""
        if client is not None:
            prompt = self._text_prompt(question.question, profile, job, cover_letter_text, max_words)
            try:
                answer = await client.complete(
                    [ChatMessage(role="system", content=SYSTEM_PROMPT), ChatMessage(role="user", content=prompt)]
                )
            except CompletionError as e:
                logger.warning(f"Answer generation failed for '{question.question}': {e}")

        answer = clean_answer(answer, max_words, question.max_length)
        if not answer:
            answer = clean_answer(default_answer(question.question, profile, job), max_words, question.max_length)
        return answer

    def _text_prompt(
        self,
        question: str,
        profile: ApplicantProfile,
        job: JobContext,
        cover_letter_text: str | None,
        max_words: int,
    ) -> str:
        parts = [
            f"Job Title: {job.title}",
            f"Company: {job.company}",
        ]
        if job.description:
            parts.append(f"Job Description:\n{job.description[: self.settings.job_description_excerpt_chars]}")
        parts.append(f"\nCandidate Profile:\n{self._condensed_profile(profile)}")
        if cover_letter_text:
            parts.append(f"\nCover Letter:\n{cover_letter_text[: self.settings.cover_letter_excerpt_chars]}")

        context = "\n".join(parts)
        return f"""Based on the following context, answer this application question:

{context}

---
QUESTION: {question}

Answer in at most {max_words} words. Do not start with "I am"."""

    @staticmethod
    def _condensed_profile(profile: ApplicantProfile) -> str:
        lines = [f"Name: {profile.full_name}"]
        if profile.headline:
            lines.append(f"Headline: {profile.headline}")
        if profile.current_title:
            role = profile.current_title
            if profile.current_company:
                role += f" at {profile.current_company}"
            lines.append(f"Current Role: {role}")
        if profile.years_of_experience is not None:
            lines.append(f"Years of Experience: {profile.years_of_experience}")
        if profile.skills:
            lines.append(f"Skills: {', '.join(profile.skills[:15])}")
        if profile.summary:
            lines.append(f"Summary: {profile.summary}")
        for experience in profile.experiences[:2]:
            lines.append(f"- {experience.title} at {experience.company}")
            for highlight in experience.highlights[:2]:
                lines.append(f"  * {highlight}")
        return "\n".join(lines)


def clean_answer(text: str, max_words: int, max_length: int | None = None) -> str:
    """Normalize a drafted answer and enforce word and character caps.

    Args:
        text: Raw completion text
        max_words: Word cap
        max_length: Optional character cap of the target control

    Returns:
        Cleaned answer, possibly empty
    """
    answer = (text or "").strip().strip('"').strip("'").strip()
    answer = re.sub(r"^answer:\s*", "", answer, flags=re.IGNORECASE)
    answer = re.sub(r"^I am\b", "I'm", answer)

    words = answer.split()
    if len(words) > max_words:
        answer = " ".join(words[:max_words])
    if max_length and len(answer) > max_length:
        answer = answer[:max_length].rstrip()
    return answer


def default_answer(question: str, profile: ApplicantProfile, job: JobContext) -> str:
    """Canned, profile-aware answer keyed by question keywords."""
    text = question.lower()
    skills = ", ".join(profile.skills[:3]) or "my core skills"
    role = profile.current_title or "my current role"

    if "why" in text and any(word in text for word in ("company", "join", "role", "position", "work", job.company.lower())):
        return (
            f"I'm excited about the {job.title} role at {job.company} because it matches my experience "
            f"as {role} and my strengths in {skills}. I'd welcome the chance to contribute to the team."
        )
    if "strength" in text:
        return f"My key strengths include {skills}, along with clear communication and a focus on delivering results."
    if "salary" in text or "compensation" in text:
        return profile.salary_expectation or (
            "I'm flexible on compensation and open to discussing a package in line with the role and market rates."
        )
    if any(word in text for word in ("start", "available", "availability", "notice")):
        return profile.available_start_date or "I can start within two weeks of receiving an offer."

    years = f"{profile.years_of_experience} years of experience" if profile.years_of_experience else "my experience"
    return (
        f"With {years} as {role} and skills in {skills}, I'm confident I can contribute "
        f"to the {job.title} role at {job.company}."
    )
