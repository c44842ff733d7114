"""
Jinja2 templates for the OTP, welcome and admin notification mails.
"""

from dataclasses import dataclass
from typing import Optional

from jinja2 import DictLoader, Environment, select_autoescape

from intake.config.settings import IntakeConfigs
from intake.core.constants import UserType
from intake.utils.datetime_helpers import format_datetime_ist, get_utc_now

configs = IntakeConfigs()

TEMPLATES = {
    "otp.txt": (
        "Your OTP for email verification is: {{ otp }}. "
        "This OTP is valid for {{ expiry_minutes }} minutes."
    ),
    "otp.html": """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #4f46e5;">Email Verification</h2>
  <p>Hello,</p>
  <p>Your OTP for email verification is: <strong>{{ otp }}</strong></p>
  <p>This OTP is valid for {{ expiry_minutes }} minutes.</p>
  <p>If you didn't request this OTP, please ignore this email.</p>
  <p>Best regards,<br>{{ settings.EMAIL_FROM_NAME }} Team</p>
</div>
""",
    "welcome.txt": """Welcome to {{ settings.COMPANY_NAME }}, {{ candidate.name }}!

Thank you for registering for {{ settings.EVENT_NAME }}.
Registration ID: {{ candidate.registration_id }}

Event Details:
- Date: {{ settings.EVENT_DATE }}
- Time: {{ settings.EVENT_TIME }}
- Venue: {{ settings.EVENT_VENUE }}
- City: {{ settings.EVENT_CITY }}
{% if is_student %}
What to Expect:
- On-the-spot interviews & hiring opportunities
- Free career & skill development sessions
- Interaction with industry recruiters
- Participation certificate for all attendees

Please bring:
- Updated Resume
- College ID / Valid Photo ID
- Passport-size photograph (optional)
{% else %}
Event Benefits for Hiring Partners:
- Dedicated hiring booth with branding visibility
- Access to qualified student profiles
- On-the-spot interview and selection opportunity
{% endif %}
For questions contact: {{ settings.SUPPORT_EMAIL }}{% if settings.SUPPORT_PHONE %} | {{ settings.SUPPORT_PHONE }}{% endif %}

Warm regards,
{{ settings.COMPANY_NAME }}
""",
    "welcome.html": """
<div style="font-family: 'Helvetica Neue', Arial, sans-serif; background-color: #f5f7fb; padding: 24px;">
  <div style="max-width:600px; margin:0 auto; background:#ffffff; border-radius:10px;">
    <div style="padding:20px 24px; background:#4f46e5; color:#fff;">
      <h1 style="margin:0; font-size:20px;">Welcome, {{ candidate.name }}!</h1>
      <p style="margin:6px 0 0; font-size:14px;">Your registration for <strong>{{ settings.EVENT_NAME }}</strong> is confirmed.</p>
    </div>
    <div style="padding:20px 24px;">
      <p><strong>Registration ID:</strong> {{ candidate.registration_id }}</p>
      <p>
        <strong>Date:</strong> {{ settings.EVENT_DATE }}<br>
        <strong>Time:</strong> {{ settings.EVENT_TIME }}<br>
        <strong>Venue:</strong> {{ settings.EVENT_VENUE }}<br>
        <strong>City:</strong> {{ settings.EVENT_CITY }}
      </p>
      {% if settings.EVENT_MAP_LINK %}
      <p><a href="{{ settings.EVENT_MAP_LINK }}">View Location / Google Maps</a></p>
      {% endif %}
      {% if is_student %}
      <p><strong>What to Bring</strong></p>
      <ul>
        <li>Updated Resume</li>
        <li>College ID Card / Valid Photo ID</li>
        <li>Passport-size photograph (optional)</li>
      </ul>
      {% else %}
      <p><strong>Event Benefits for Hiring Partners</strong></p>
      <ul>
        <li>Dedicated hiring booth with branding visibility</li>
        <li>Access to qualified student profiles</li>
        <li>On-the-spot interview and selection opportunity</li>
      </ul>
      {% endif %}
      <p>Email: {{ settings.SUPPORT_EMAIL }}{% if settings.SUPPORT_PHONE %}<br>Phone: {{ settings.SUPPORT_PHONE }}{% endif %}<br>Website: {{ settings.WEBSITE }}</p>
    </div>
    <div style="background:#f9fafb; padding:14px 24px; text-align:center; color:#6b7280; font-size:13px;">
      &copy; {{ year }} {{ settings.COMPANY_NAME }}. All rights reserved.
    </div>
  </div>
</div>
""",
    "admin.txt": """New Candidate Registration

A new candidate has submitted their application:

Name: {{ candidate.name }}
Registration ID: {{ candidate.registration_id }}
Email: {{ candidate.email }}
Phone: {{ candidate.phone }}
{% if is_student %}Course: {{ candidate.course or 'N/A' }}
College: {{ candidate.college or 'N/A' }}
University: {{ candidate.university or 'N/A' }}{% else %}Organization: {{ candidate.company_name or 'N/A' }}{% endif %}
Registration Date: {{ registered_at }}

This is an automated notification. Please do not reply to this email.
""",
    "admin.html": """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #4f46e5;">New Candidate Registration</h2>
  <div style="background: #f9fafb; padding: 16px; border-radius: 8px;">
    <p><strong>Name:</strong> {{ candidate.name }}</p>
    <p><strong>Registration ID:</strong> {{ candidate.registration_id }}</p>
    <p><strong>Email:</strong> {{ candidate.email }}</p>
    <p><strong>Phone:</strong> {{ candidate.phone }}</p>
    {% if is_student %}
    <p><strong>Course:</strong> {{ candidate.course or 'N/A' }}</p>
    <p><strong>College:</strong> {{ candidate.college or 'N/A' }}</p>
    <p><strong>University:</strong> {{ candidate.university or 'N/A' }}</p>
    {% else %}
    <p><strong>Organization:</strong> {{ candidate.company_name or 'N/A' }}</p>
    {% endif %}
    <p><strong>Registration Date:</strong> {{ registered_at }}</p>
  </div>
  <p style="color: #6b7280; font-size: 14px;">This is an automated notification. Please do not reply to this email.</p>
</div>
""",
}

env = Environment(
    loader=DictLoader(TEMPLATES),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
    trim_blocks=True,
    lstrip_blocks=True,
)


@dataclass
class RenderedEmail:
    subject: str
    text: str
    html: Optional[str] = None


def _render(name: str, **context) -> str:
    return env.get_template(name).render(settings=configs, **context)


def render_otp_email(otp: str, expiry_minutes: int) -> RenderedEmail:
    context = {"otp": otp, "expiry_minutes": expiry_minutes}
    return RenderedEmail(
        subject="Your OTP for Email Verification",
        text=_render("otp.txt", **context),
        html=_render("otp.html", **context),
    )


def render_welcome_email(candidate) -> RenderedEmail:
    context = {
        "candidate": candidate,
        "is_student": candidate.user_type == UserType.STUDENT,
        "year": get_utc_now().year,
    }
    return RenderedEmail(
        subject=f"Registration Confirmed - {configs.EVENT_NAME} | {configs.COMPANY_NAME}",
        text=_render("welcome.txt", **context),
        html=_render("welcome.html", **context),
    )


def render_admin_notification(candidate) -> RenderedEmail:
    context = {
        "candidate": candidate,
        "is_student": candidate.user_type == UserType.STUDENT,
        "registered_at": format_datetime_ist(candidate.created_at or get_utc_now()),
    }
    return RenderedEmail(
        subject=f"New Candidate Registration: {candidate.name}",
        text=_render("admin.txt", **context),
        html=_render("admin.html", **context),
    )
