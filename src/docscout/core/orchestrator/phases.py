"""Static phase definitions for the two exploration pipelines."""

from __future__ import annotations

from ..ir.model import Phase, Task, act, evaluate, navigate, screenshot, wait

AUTH_FOCUS = 'form, [role="dialog"], [data-testid*="login"], [data-testid*="signin"], main'

SCROLL_HEIGHT_JS = "() => document.body ? document.body.scrollHeight : 0"
SURVEY_FRACTIONS = (0.3, 0.6, 0.9)

# Clicks the first visible sign-in link; used when the AI layer found nothing
MANUAL_SIGN_IN_JS = """() => {
  const selectors = [
    'a[href*="login"], a[href*="signin"], a[href*="sign-in"]',
    '.signin, .login, .sign-in',
  ];
  for (const selector of selectors) {
    const element = document.querySelector(selector);
    if (element && element.offsetParent !== null) {
      element.click();
      return true;
    }
  }
  return false;
}"""

# Documentation run

HOMEPAGE = "homepage"
AUTH = "auth"
FEATURES = "features"

PHASE_NAMES = {
    HOMEPAGE: "Homepage Analysis",
    AUTH: "Authentication Flow Discovery",
    FEATURES: "Feature Exploration",
}


def homepage_phase(url: str) -> Phase:
    return Phase(
        HOMEPAGE,
        PHASE_NAMES[HOMEPAGE],
        (
            navigate(url, "Navigating to homepage..."),
            wait(3000, "Letting the page settle..."),
            screenshot("Taking initial screenshot...", "homepage-viewport.png"),
            screenshot("Capturing full homepage...", "homepage-full.png", full_page=True),
        ),
    )


def auth_phase() -> Phase:
    return Phase(
        AUTH,
        PHASE_NAMES[AUTH],
        (
            act(
                "click the sign up, log in, or get started button on this page",
                "AI searching for authentication elements...",
            ),
            wait(3000, "Waiting for the authentication page..."),
            screenshot("Capturing authentication options...", "auth-surface.png", focus_element=AUTH_FOCUS),
        ),
        watch_auth=True,
    )


def features_phase(url: str, revisit: bool = True) -> Phase:
    tasks = [navigate(url, "Returning to homepage...")] if revisit else []
    tasks += [
        act("scroll down slowly to see more content and features", "AI analyzing page structure and navigation..."),
        wait(2000, "Waiting for content to load..."),
        screenshot("Capturing features...", "features-scrolled.png"),
        screenshot("Capturing full page...", "features-full.png", full_page=True),
    ]
    return Phase(FEATURES, PHASE_NAMES[FEATURES], tuple(tasks))


def post_auth_phase() -> Phase:
    """Capture what the user sees right after logging in."""
    return Phase(
        "post_auth",
        "Authenticated Content",
        (
            wait(5000, "Waiting for authenticated page to load..."),
            screenshot("Authenticated viewport", "post-auth-viewport.png"),
            act("scroll down to see more content", "Scrolling authenticated content..."),
            wait(3000),
            screenshot("Authenticated content after scroll", "post-auth-scrolled.png"),
            screenshot("Full authenticated page", "post-auth-full.png", full_page=True),
        ),
    )


# Sign-in exploration run

INITIAL = "initial"
SIGN_IN = "signin"
SURVEY = "survey"

EXPLORE_PHASE_NAMES = {
    INITIAL: "Initial Capture",
    SIGN_IN: "Sign-in Discovery",
    SURVEY: "Page Survey",
}


def initial_phase(url: str) -> Phase:
    return Phase(
        INITIAL,
        EXPLORE_PHASE_NAMES[INITIAL],
        (
            navigate(url),
            wait(3000, "Waiting for page to load"),
            screenshot("Initial page load", "01-initial-viewport.png"),
        ),
    )


def sign_in_phase() -> Phase:
    return Phase(
        SIGN_IN,
        EXPLORE_PHASE_NAMES[SIGN_IN],
        (
            act("find and click the sign in or login button"),
            wait(3000, "Waiting for sign-in page"),
            screenshot("Sign-in page", "02-sign-in-page.png", focus_element=AUTH_FOCUS),
        ),
        watch_auth=True,
    )


def measure_task() -> Task:
    return evaluate(SCROLL_HEIGHT_JS, "Measuring page height")


def survey_phase(scroll_height: int) -> tuple[Phase, dict[str, int]]:
    """Scroll to fixed fractions of the page, then take a full-page capture.

    Returns the phase and the scroll offset recorded for each screenshot file.
    """
    tasks = []
    positions: dict[str, int] = {}
    for fraction in SURVEY_FRACTIONS:
        offset = round(scroll_height * fraction)
        pct = round(fraction * 100)
        filename = f"scroll-{pct}.png"
        tasks += [
            evaluate(f"() => window.scrollTo(0, {offset})", f"Scroll to {pct}%"),
            wait(1000),
            screenshot(f"Page at {pct}% scroll", filename),
        ]
        positions[filename] = offset
    tasks.append(screenshot("Full page", "full-page.png", full_page=True))
    positions["full-page.png"] = 0
    return Phase(SURVEY, EXPLORE_PHASE_NAMES[SURVEY], tuple(tasks)), positions
