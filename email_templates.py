"""
Parent email templates — invitation, reminder and thank-you messages.

Templates use a small Handlebars-like syntax:
  {{var}}                  substituted with the value (missing -> removed)
  {{#if var}}...{{/if}}    kept only when var is truthy
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from markupsafe import escape

TEMPLATE_TYPES = ("invitation", "reminder", "thank_you")
REQUIRED_VARIABLES = ("teacherName", "childName", "assessmentLink")
MIN_TEMPLATE_LENGTH = 100
MAX_TEMPLATE_LENGTH = 5000

_CONDITIONAL_RE = re.compile(r"\{\{#if (\w+)\}\}(.*?)\{\{/if\}\}", re.DOTALL)
_VARIABLE_RE = re.compile(r"\{\{(\w+)\}\}")
_LEFTOVER_RE = re.compile(r"\{\{.*?\}\}")
_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")
_URL_RE = re.compile(r"https?://[^\s<]+")

DEFAULT_TEMPLATES: dict[str, dict[str, str]] = {
    "invitation": {
        "subject": "Help Your Child's Teacher Understand Their Learning Style - {{childName}}",
        "content": """Dear Parent/Guardian,

I'm {{teacherName}}, {{childName}}'s teacher this year{{#if schoolName}} at {{schoolName}}{{/if}}.

To understand how {{childName}} learns best from the very first day, I'm asking every family to complete a short Learning Profile. It takes about 5 minutes.

**What is the Learning Profile?**
- A short questionnaire covering six areas: Communication, Collaboration, Content, Critical Thinking, Creative Innovation and Confidence
- Identifies your child's learning strengths and growth areas
- Gives recommendations for home and school

**Complete {{childName}}'s Learning Profile:**
{{assessmentLink}}

{{#if dueDate}}Please complete it by {{dueDate}} so I can review every profile before our first conference.{{/if}}

Thank you for helping me get to know {{childName}}.

Best regards,
{{teacherName}}
{{#if schoolName}}{{schoolName}}{{/if}}
{{teacherEmail}}""",
    },
    "reminder": {
        "subject": "Reminder: {{childName}}'s Learning Profile - Just 5 Minutes!",
        "content": """Dear Parent/Guardian,

This is a friendly reminder about completing {{childName}}'s Learning Profile.

I sent the link a few days ago. Knowing how {{childName}} learns will help me plan a better classroom experience.

**Assessment link:**
{{assessmentLink}}

{{#if dueDate}}I'm hoping to have all profiles completed by {{dueDate}}.{{/if}}

If you have any questions or need help with the link, please reach out to me directly.

Warm regards,
{{teacherName}}
{{teacherEmail}}""",
    },
    "thank_you": {
        "subject": "Thank you! {{childName}}'s Learning Profile Complete",
        "content": """Dear Parent/Guardian,

Thank you for completing {{childName}}'s Learning Profile!

**What's next:**
- I'll use these insights in my lesson planning
- We can talk through {{childName}}'s learning style at our next conference

Your child's full results stay available at the link you used to complete the assessment, and you can share them with other teachers or tutors.

Best regards,
{{teacherName}}
{{#if schoolName}}{{schoolName}}{{/if}}
{{teacherEmail}}""",
    },
}

SAMPLE_DATA: dict[str, str] = {
    "teacherName": "Mrs. Johnson",
    "teacherEmail": "mjohnson@school.edu",
    "childName": "Emma",
    "parentEmail": "parent@email.com",
    "schoolName": "Lincoln Elementary",
    "gradeLevel": "3rd Grade",
    "assessmentLink": "https://example.com/assessment/start?ref=abc123&source=teacher",
    "dueDate": "Friday, September 15th",
}


def render_template_text(template: str, data: Mapping[str, Any]) -> str:
    """Render a template string against data. Unknown placeholders vanish."""

    def _conditional(match: re.Match) -> str:
        return match.group(2) if data.get(match.group(1)) else ""

    def _variable(match: re.Match) -> str:
        value = data.get(match.group(1))
        return str(value) if value else ""

    rendered = _CONDITIONAL_RE.sub(_conditional, template)
    rendered = _VARIABLE_RE.sub(_variable, rendered)
    rendered = _LEFTOVER_RE.sub("", rendered)
    return rendered.strip()


def render_email(template_type: str, data: Mapping[str, Any]) -> tuple[str, str]:
    """Return (subject, plain-text body) for one of DEFAULT_TEMPLATES."""
    if template_type not in DEFAULT_TEMPLATES:
        raise ValueError(f"Unknown template type: {template_type}")
    template = DEFAULT_TEMPLATES[template_type]
    return (
        render_template_text(template["subject"], data),
        render_template_text(template["content"], data),
    )


def format_email_html(content: str) -> str:
    """Wrap plain template output as a simple HTML email."""
    html = str(escape(content))
    html = html.replace("\n\n", "</p><p>").replace("\n", "<br>")
    html = _BOLD_RE.sub(r"<strong>\1</strong>", html)
    html = _URL_RE.sub(r'<a href="\g<0>">\g<0></a>', html)
    return (
        '<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto; '
        'line-height: 1.6; color: #333;">'
        f"<p>{html}</p>"
        '<p style="font-size: 12px; color: #666;">'
        "This email was sent from the Learning Profile platform.</p>"
        "</div>"
    )


def validate_template(template: str) -> dict[str, Any]:
    """Check a custom template for required placeholders and sane length."""
    errors = [
        f"Missing required variable: {{{{{name}}}}}"
        for name in REQUIRED_VARIABLES
        if f"{{{{{name}}}}}" not in template
    ]
    if len(template) > MAX_TEMPLATE_LENGTH:
        errors.append(f"Template is too long (max {MAX_TEMPLATE_LENGTH} characters)")
    if len(template) < MIN_TEMPLATE_LENGTH:
        errors.append(f"Template is too short (min {MIN_TEMPLATE_LENGTH} characters)")
    return {"is_valid": not errors, "errors": errors}


def preview_template(template: str) -> str:
    return render_template_text(template, SAMPLE_DATA)


def generate_assessment_link(assignment_token: str, base_url: str) -> str:
    return f"{base_url.rstrip('/')}/assessment/start?ref={assignment_token}&source=teacher"
