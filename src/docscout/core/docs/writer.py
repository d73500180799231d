"""Assembles a documentation bundle from captured material only.

Anything a phase did not capture is written as "not available" rather than
filled with plausible-sounding defaults.
"""

from __future__ import annotations

from ...api.dto import (
    CompleteDocumentation,
    DocumentationSection,
    DocumentationSummary,
    ExplorationResult,
    SessionProgress,
)
from ..extractor.schemas import AuthFlowData, FeatureData, HomepageData

NOT_AVAILABLE = "Not available"


def _bullets(items: list[str], empty: str = NOT_AVAILABLE) -> str:
    if not items:
        return empty
    return "\n".join(f"- {item}" for item in items)


def _screenshots_for(progress: SessionProgress, task_id: str) -> list[str]:
    try:
        return list(progress.task(task_id).screenshots)
    except KeyError:
        return []


class SectionDocumentationWriter:
    """Turns extracted phase data plus screenshots into CompleteDocumentation."""

    def write(
        self,
        session_id: str,
        platform_name: str,
        progress: SessionProgress,
        exploration: ExplorationResult,
        homepage: HomepageData | None = None,
        auth: AuthFlowData | None = None,
        features: FeatureData | None = None,
    ) -> CompleteDocumentation:
        name = (homepage.platform_name if homepage else "") or platform_name
        sections = [
            self._overview(name, homepage, _screenshots_for(progress, "homepage")),
            self._authentication(auth, _screenshots_for(progress, "auth")),
            self._features(features, _screenshots_for(progress, "features")),
            self._authenticated_experience(exploration),
        ]
        total = sum(len(s.screenshots) for s in sections)
        return CompleteDocumentation(
            platform_name=name,
            session_id=session_id,
            sections=sections,
            summary=DocumentationSummary(
                total_screenshots=total,
                key_insights=self._insights(name, homepage, auth, features, exploration),
                recommended_next_steps=self._next_steps(auth, features, exploration),
            ),
        )

    def _overview(self, name: str, data: HomepageData | None, screenshots: list[str]) -> DocumentationSection:
        if data is None:
            content = f"# {name}\n\nHomepage analysis did not complete. Overview: {NOT_AVAILABLE.lower()}."
        else:
            content = "\n".join(
                [
                    f"# {name}",
                    "",
                    data.value_proposition or f"Value proposition: {NOT_AVAILABLE.lower()}.",
                    "",
                    "## Key Features",
                    _bullets(data.key_features),
                    "",
                    "## Target Audience",
                    data.target_audience or NOT_AVAILABLE,
                    "",
                    "## Pricing",
                    _bullets(data.pricing_tiers),
                    "",
                    "## Sign-up Options",
                    _bullets(data.signup_options),
                ]
            )
        return DocumentationSection(
            title=f"{name} Overview",
            content=content,
            screenshots=screenshots,
            action_items=[
                "Review feature set alignment with business needs",
                "Evaluate pricing tier suitability",
            ],
        )

    def _authentication(self, data: AuthFlowData | None, screenshots: list[str]) -> DocumentationSection:
        if data is None:
            content = f"# Authentication Setup\n\nAuthentication discovery did not complete: {NOT_AVAILABLE.lower()}."
        else:
            signup = data.signup_process
            login = data.login_process
            security = []
            if login.two_factor_auth:
                security.append("Two-factor authentication supported")
            if login.forgot_password_flow:
                security.append("Password recovery available")
            if signup.verification_required:
                security.append("Email verification required")
            content = "\n".join(
                [
                    "# Authentication Setup",
                    "",
                    "## Sign-up Process",
                    "\n".join(f"{i}. {step}" for i, step in enumerate(signup.steps, 1)) or NOT_AVAILABLE,
                    "",
                    "## Required Information",
                    _bullets(signup.required_fields),
                    "",
                    "## Login Options",
                    _bullets(login.login_options + signup.social_logins),
                    "",
                    "## Security Features",
                    _bullets(security),
                ]
            )
        return DocumentationSection(
            title="Authentication & Access",
            content=content,
            screenshots=screenshots,
            action_items=["Set up authentication method", "Test login process"],
        )

    def _features(self, data: FeatureData | None, screenshots: list[str]) -> DocumentationSection:
        if data is None:
            content = f"# Platform Features\n\nFeature discovery did not complete: {NOT_AVAILABLE.lower()}."
        else:
            core = "\n\n".join(
                f"### {f.name}\n{f.description}" + (f" ({f.category})" if f.category else "")
                for f in data.core_features
            )
            capabilities = []
            if data.api_access:
                capabilities.append("API access available for developers")
            if data.mobile_app:
                capabilities.append("Mobile applications available")
            content = "\n".join(
                [
                    "# Platform Features",
                    "",
                    "## Navigation Structure",
                    _bullets(data.navigation.main_sections),
                    "",
                    "### Sidebar Navigation",
                    _bullets(data.navigation.sidebar),
                    "",
                    "## Core Features",
                    core or NOT_AVAILABLE,
                    "",
                    "## Integrations",
                    _bullets(data.integrations),
                    "",
                    "## Additional Capabilities",
                    _bullets(capabilities),
                ]
            )
        return DocumentationSection(
            title="Features & Navigation",
            content=content,
            screenshots=screenshots,
            action_items=["Explore core features relevant to use case", "Set up necessary integrations"],
        )

    def _authenticated_experience(self, exploration: ExplorationResult) -> DocumentationSection:
        shots = [
            s.screenshot_path for s in exploration.post_auth_screenshots if s.success and s.screenshot_path
        ]
        if exploration.authentication_completed and shots:
            content = "# Authenticated Experience\n\n" + "\n".join(
                f"- {s.description}" for s in exploration.post_auth_screenshots if s.success
            )
        elif exploration.sign_in_detected:
            content = (
                "# Authenticated Experience\n\n"
                "A sign-in page was found but authentication was not completed. "
                f"Authenticated content: {NOT_AVAILABLE.lower()}."
            )
        else:
            content = (
                "# Authenticated Experience\n\n"
                f"No sign-in page was found. Authenticated content: {NOT_AVAILABLE.lower()}."
            )
        return DocumentationSection(
            title="Authenticated Experience",
            content=content,
            screenshots=shots,
            action_items=[] if shots else ["Sign in manually to document the authenticated experience"],
        )

    def _insights(
        self,
        name: str,
        homepage: HomepageData | None,
        auth: AuthFlowData | None,
        features: FeatureData | None,
        exploration: ExplorationResult,
    ) -> list[str]:
        insights = []
        if homepage and homepage.key_features:
            insights.append(f"{name} highlights {len(homepage.key_features)} key features on its homepage")
        if auth:
            methods = auth.login_process.login_options + auth.signup_process.social_logins
            if methods:
                insights.append(f"Authentication supports {len(methods)} login methods")
            if auth.login_process.two_factor_auth:
                insights.append("Two-factor authentication available for enhanced security")
        if features:
            if features.core_features:
                insights.append(f"Platform includes {len(features.core_features)} documented core features")
            if features.api_access:
                insights.append("API access available for custom integrations")
        if exploration.authentication_completed:
            insights.append("Authenticated area was captured after sign-in")
        return insights

    def _next_steps(
        self,
        auth: AuthFlowData | None,
        features: FeatureData | None,
        exploration: ExplorationResult,
    ) -> list[str]:
        steps = ["Create account and complete onboarding process"]
        if features and features.integrations:
            steps.append("Configure integrations with existing tools")
        if auth is None or not exploration.authentication_completed:
            steps.append("Re-run with a manual sign-in to capture the authenticated experience")
        steps.append("Review documentation and support resources")
        return steps
