from __future__ import annotations

from ..api.dto import PlatformConfig

DEMO_PLATFORMS: list[PlatformConfig] = [
    PlatformConfig(
        name="Notion",
        url="https://www.notion.so",
        description="All-in-one workspace for notes, docs, and collaboration",
        complexity="Medium",
        estimated_time="3-4 minutes",
        special_features=["Rich text editor", "Database views", "AI features", "Templates"],
    ),
    PlatformConfig(
        name="Linear",
        url="https://linear.app",
        description="Issue tracking and project management for modern teams",
        complexity="High",
        estimated_time="4-5 minutes",
        special_features=["Keyboard shortcuts", "Git integrations", "Roadmaps", "Analytics"],
    ),
    PlatformConfig(
        name="Airtable",
        url="https://www.airtable.com",
        description="Spreadsheet-database hybrid for organizing work",
        complexity="Low",
        estimated_time="2-3 minutes",
        special_features=["Views and filters", "Automations", "Apps", "Sync"],
    ),
    PlatformConfig(
        name="Figma",
        url="https://www.figma.com",
        description="Collaborative design and prototyping platform",
        complexity="Medium",
        estimated_time="3-4 minutes",
        special_features=["Real-time collaboration", "Design systems", "Prototyping", "Dev handoff"],
    ),
    PlatformConfig(
        name="Stripe",
        url="https://stripe.com",
        description="Payment processing and financial infrastructure",
        complexity="High",
        estimated_time="4-5 minutes",
        special_features=["Payment APIs", "Dashboard", "Connect", "Billing"],
    ),
    PlatformConfig(
        name="Vercel",
        url="https://vercel.com",
        description="Frontend deployment and hosting platform",
        complexity="Low",
        estimated_time="2-3 minutes",
        special_features=["Git integrations", "Preview deployments", "Edge functions", "Analytics"],
    ),
]


def get_platform_by_name(name: str) -> PlatformConfig | None:
    """Case-insensitive lookup in the demo catalogue."""
    wanted = name.lower()
    for platform in DEMO_PLATFORMS:
        if platform.name.lower() == wanted:
            return platform
    return None
