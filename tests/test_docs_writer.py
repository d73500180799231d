"""Tests for documentation assembly."""

from __future__ import annotations

from docscout.api.dto import ExplorationResult, ScreenshotResult, SessionProgress, TaskProgress
from docscout.core.docs.writer import SectionDocumentationWriter
from docscout.core.extractor.schemas import (
    AuthFlowData,
    CoreFeature,
    FeatureData,
    HomepageData,
    LoginProcess,
    SignupProcess,
)


def _progress() -> SessionProgress:
    return SessionProgress(
        session_id="s1",
        platform_name="Example",
        platform_url="https://example.com",
        tasks=[
            TaskProgress(task_id="homepage", task_name="Homepage Analysis", screenshots=["/h1.png", "/h2.png"]),
            TaskProgress(task_id="auth", task_name="Authentication Flow Discovery", screenshots=["/a1.png"]),
            TaskProgress(task_id="features", task_name="Feature Exploration"),
        ],
    )


class TestSectionDocumentationWriter:
    def setup_method(self):
        self.writer = SectionDocumentationWriter()

    def test_uses_extracted_material(self):
        doc = self.writer.write(
            "s1",
            "Example",
            _progress(),
            ExplorationResult(url="https://example.com"),
            homepage=HomepageData(
                platform_name="Example Cloud",
                value_proposition="Ship faster",
                key_features=["Dashboards", "Alerts"],
            ),
            auth=AuthFlowData(
                signup_process=SignupProcess(steps=["Enter email", "Verify"], social_logins=["Google"]),
                login_process=LoginProcess(two_factor_auth=True),
            ),
            features=FeatureData(
                core_features=[CoreFeature(name="Alerts", description="Notify on change", category="Ops")],
                api_access=True,
            ),
        )

        assert doc.platform_name == "Example Cloud"
        assert doc.session_id == "s1"
        overview, auth, features, authed = doc.sections
        assert "Ship faster" in overview.content
        assert "- Dashboards" in overview.content
        assert overview.screenshots == ["/h1.png", "/h2.png"]
        assert "1. Enter email" in auth.content
        assert "- Google" in auth.content
        assert "Two-factor authentication supported" in auth.content
        assert "### Alerts\nNotify on change (Ops)" in features.content
        assert "API access available for developers" in features.content
        assert doc.summary.total_screenshots == 3
        assert "Two-factor authentication available for enhanced security" in doc.summary.key_insights
        assert "No sign-in page was found" in authed.content

    def test_missing_material_is_reported_not_invented(self):
        doc = self.writer.write("s1", "Example", _progress(), ExplorationResult(url="https://example.com"))

        overview, auth, features, _ = doc.sections
        assert doc.platform_name == "Example"
        assert "did not complete" in overview.content
        assert "not available" in auth.content
        assert "not available" in features.content
        assert doc.summary.key_insights == []

    def test_empty_extraction_fields_say_not_available(self):
        doc = self.writer.write(
            "s1", "Example", _progress(), ExplorationResult(url="https://example.com"), homepage=HomepageData()
        )

        overview = doc.sections[0]
        assert "## Pricing\nNot available" in overview.content
        assert "## Target Audience\nNot available" in overview.content

    def test_authenticated_experience_lists_post_auth_screenshots(self):
        exploration = ExplorationResult(
            url="https://example.com",
            sign_in_detected=True,
            authentication_completed=True,
            post_auth_screenshots=[
                ScreenshotResult(url="https://example.com/app", screenshot_path="/p1.png", description="Dashboard"),
                ScreenshotResult(url="https://example.com/app", success=False, error="boom", description="Broken"),
            ],
        )

        doc = self.writer.write("s1", "Example", _progress(), exploration)

        authed = doc.sections[-1]
        assert authed.screenshots == ["/p1.png"]
        assert "- Dashboard" in authed.content
        assert "Broken" not in authed.content
        assert doc.summary.total_screenshots == 4

    def test_auth_timeout_is_stated(self):
        exploration = ExplorationResult(url="https://example.com", sign_in_detected=True)

        doc = self.writer.write("s1", "Example", _progress(), exploration)

        authed = doc.sections[-1]
        assert "authentication was not completed" in authed.content
        assert authed.screenshots == []
        assert any("manual sign-in" in step for step in doc.summary.recommended_next_steps)
