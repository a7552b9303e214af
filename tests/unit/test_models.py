"""Tests for data models and application data assembly."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from autoapply.application_data import build_application_data, split_name
from autoapply.handlers.models import ApplicationData, DocumentFile, FormAnalysis
from autoapply.models import AutoApplySession, AutoApplyStatus
from autoapply.session_store import SessionStore


class TestApplicantModels:
    """Tests for run input models."""

    def test_profile_is_immutable(self, profile):
        """Test the applicant profile cannot change during a run."""
        with pytest.raises(ValidationError):
            profile.full_name = "Someone Else"

    def test_profile_defaults(self, profile):
        """Test screening flags default to authorized, no sponsorship."""
        assert profile.work_authorized is True
        assert profile.requires_sponsorship is False
        assert profile.willing_to_relocate is False

    def test_job_context_from_input(self, apply_input):
        """Test the job context is derived from the run input."""
        job = apply_input("https://jobs.lever.co/acme/1").job_context()

        assert job.title == "Staff Engineer"
        assert job.company == "Acme"


class TestApplicationData:
    """Tests for ApplicationData and its assembly."""

    @pytest.mark.parametrize(
        "full_name,expected",
        [
            ("Jane Doe", ("Jane", "Doe")),
            ("Mary Ann Smith", ("Mary", "Ann Smith")),
            ("Cher", ("Cher", "")),
        ],
    )
    def test_split_name(self, full_name, expected):
        """Test the first space separates first and last name."""
        assert split_name(full_name) == expected

    def test_build_application_data(self, apply_input):
        """Test profile values win over the resume's copies."""
        resume = DocumentFile(filename="Jane_Doe_Resume.pdf", content=b"%PDF")
        run_input = apply_input("https://jobs.lever.co/acme/1", cover_letter_content="Dear Acme")

        data = build_application_data(run_input, resume=resume)

        assert (data.first_name, data.last_name) == ("Jane", "Doe")
        assert data.phone == "+1 555 0100"
        assert data.location == "Boston, MA"
        assert data.resume == resume
        assert data.cover_letter is None
        assert data.cover_letter_text == "Dear Acme"
        assert data.years_of_experience == 6
        assert data.custom_responses == {}

    def test_value_for(self):
        """Test mapped values are rendered as fillable strings."""
        data = ApplicationData(
            first_name="Jane",
            last_name="Doe",
            full_name="Jane Doe",
            email="jane@example.com",
            requires_sponsorship=False,
            years_of_experience=6,
            resume=DocumentFile(filename="r.pdf", content=b"%PDF"),
        )

        assert data.value_for("email") == "jane@example.com"
        assert data.value_for("requires_sponsorship") == "No"
        assert data.value_for("years_of_experience") == "6"
        assert data.value_for("phone") is None
        assert data.value_for("resume") is None
        assert data.value_for("not_an_attribute") is None


class TestFormAnalysis:
    """Tests for FormAnalysis step bookkeeping."""

    def test_single_step(self):
        """Test single-step forms have no further steps."""
        assert FormAnalysis().has_more_steps is False

    def test_step_counts(self):
        """Test step position decides whether to advance."""
        assert FormAnalysis(is_multi_step=True, current_step=1, total_steps=3).has_more_steps is True
        assert FormAnalysis(is_multi_step=True, current_step=3, total_steps=3).has_more_steps is False

    def test_step_markers_without_counts(self):
        """Test marker-only forms advance until a submit control appears."""
        assert FormAnalysis(is_multi_step=True).has_more_steps is True
        assert FormAnalysis(is_multi_step=True, submit_selector="#submit").has_more_steps is False


class TestAutoApplyStatus:
    """Tests for session status values."""

    @pytest.mark.parametrize(
        "status,terminal",
        [
            (AutoApplyStatus.PENDING, False),
            (AutoApplyStatus.FILLING, False),
            (AutoApplyStatus.COMPLETED, True),
            (AutoApplyStatus.FAILED, True),
            (AutoApplyStatus.CAPTCHA, True),
            (AutoApplyStatus.MANUAL, True),
        ],
    )
    def test_is_terminal(self, status, terminal):
        """Test exactly the four end states are terminal."""
        assert status.is_terminal is terminal

    def test_progress_bounds(self):
        """Test progress is validated to 0-100."""
        with pytest.raises(ValidationError):
            AutoApplySession(id="s1", progress=101)


class TestSessionStore:
    """Tests for SessionStore."""

    def test_set_get_delete(self):
        """Test basic storage operations."""
        store = SessionStore()
        session = AutoApplySession(id="s1")

        store.set_snapshot(session)

        assert store.get("s1") == session
        assert len(store) == 1
        assert store.all() == [session]
        assert store.delete("s1") is True
        assert store.delete("s1") is False
        assert store.get("s1") is None

    def test_cleanup_old_sessions(self):
        """Test expired and never-started sessions are removed."""
        store = SessionStore()
        now = datetime.now(timezone.utc)
        store.set("fresh", AutoApplySession(id="fresh", started_at=now))
        store.set("stale", AutoApplySession(id="stale", started_at=now - timedelta(hours=30)))
        store.set("unstarted", AutoApplySession(id="unstarted"))

        removed = store.cleanup_old_sessions()

        assert removed == 2
        assert [s.id for s in store.all()] == ["fresh"]

    def test_cleanup_custom_age(self):
        """Test a custom maximum age."""
        store = SessionStore()
        store.set(
            "s1", AutoApplySession(id="s1", started_at=datetime.now(timezone.utc) - timedelta(minutes=10))
        )

        assert store.cleanup_old_sessions(max_age=timedelta(minutes=5)) == 1
        assert len(store) == 0
