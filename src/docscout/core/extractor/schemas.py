"""Structured data pulled from pages during each documentation phase."""

from __future__ import annotations

from pydantic import BaseModel, Field


class HomepageData(BaseModel):
    platform_name: str = Field("", description="The name of the SaaS platform")
    value_proposition: str = Field("", description="Main value proposition or tagline")
    key_features: list[str] = Field(default_factory=list, description="Key features mentioned on the homepage")
    pricing_tiers: list[str] = Field(default_factory=list, description="Available pricing tiers or plans")
    signup_options: list[str] = Field(
        default_factory=list, description="Available signup/auth options (email, Google, etc.)"
    )
    target_audience: str | None = Field(None, description="Target audience or use cases mentioned")
    testimonials: list[str] = Field(default_factory=list, description="Customer testimonials if visible")


class SignupProcess(BaseModel):
    steps: list[str] = Field(default_factory=list, description="Steps in the signup process")
    required_fields: list[str] = Field(default_factory=list, description="Required form fields")
    social_logins: list[str] = Field(default_factory=list, description="Social login options available")
    verification_required: bool = Field(False, description="Whether email verification is required")


class LoginProcess(BaseModel):
    login_options: list[str] = Field(default_factory=list, description="Available login methods")
    forgot_password_flow: bool = Field(False, description="Whether forgot password is available")
    two_factor_auth: bool = Field(False, description="Whether 2FA is supported")


class AuthFlowData(BaseModel):
    signup_process: SignupProcess = Field(default_factory=SignupProcess)
    login_process: LoginProcess = Field(default_factory=LoginProcess)


class Navigation(BaseModel):
    main_sections: list[str] = Field(default_factory=list, description="Main navigation sections")
    sidebar: list[str] = Field(default_factory=list, description="Sidebar navigation items")
    footer: list[str] = Field(default_factory=list, description="Footer links")


class CoreFeature(BaseModel):
    name: str
    description: str = ""
    category: str | None = None


class FeatureData(BaseModel):
    navigation: Navigation = Field(default_factory=Navigation)
    core_features: list[CoreFeature] = Field(
        default_factory=list, description="Core features discovered through navigation"
    )
    integrations: list[str] = Field(default_factory=list, description="Third-party integrations mentioned")
    api_access: bool = Field(False, description="Whether API access is mentioned")
    mobile_app: bool = Field(False, description="Whether mobile apps are available")
