"""
HTML bodies for the transactional emails.

Anything a user typed (names, messages, titles) is escaped before it is
placed in the markup.
"""

from html import escape
from typing import Optional

from unihub.services.mailers import OutgoingEmail

_LAYOUT = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <style>
      body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; }}
      .container {{ background-color: #f9f9f9; padding: 30px; border-radius: 10px; border: 1px solid #ddd; }}
      .code {{ font-size: 32px; font-weight: bold; color: #4CAF50; text-align: center; letter-spacing: 5px; padding: 20px; background-color: #fff; border-radius: 5px; margin: 20px 0; }}
      .box {{ background-color: #fff; padding: 15px; border-radius: 5px; margin: 15px 0; border-left: 4px solid #4CAF50; }}
      .label {{ font-weight: bold; color: #555; }}
      .footer {{ margin-top: 30px; padding-top: 20px; border-top: 1px solid #ddd; font-size: 12px; color: #666; }}
    </style>
  </head>
  <body>
    <div class="container">
      <h2>{heading}</h2>
      {body}
      <div class="footer">
        <p>&copy; UniHub - Connecting University Communities</p>
      </div>
    </div>
  </body>
</html>
"""


def _render(heading: str, body: str) -> str:
    return _LAYOUT.format(heading=escape(heading), body=body)


def _line(label: str, value) -> str:
    return f'<p><span class="label">{escape(label)}:</span> {escape(str(value))}</p>'


def otp_email(to: str, code: str, minutes: int) -> OutgoingEmail:
    body = (
        "<p>Hello,</p>"
        "<p>Your login OTP code is:</p>"
        f'<div class="code">{escape(code)}</div>'
        f"<p><strong>This code will expire in {minutes} minutes.</strong></p>"
        "<p>If you didn't request this code, please ignore this email.</p>"
        "<p><strong>Security Note:</strong> Never share your OTP with anyone. "
        "UniHub staff will never ask for your OTP.</p>"
    )
    return OutgoingEmail(to=to, subject="Your UniHub Login OTP", html=_render("Welcome to UniHub!", body))


def university_verification_email(to: str, code: str, university: str, minutes: int) -> OutgoingEmail:
    body = (
        f"<p>Use this code to verify your {escape(university)} email address on UniHub:</p>"
        f'<div class="code">{escape(code)}</div>'
        f"<p><strong>This code will expire in {minutes} minutes.</strong></p>"
    )
    return OutgoingEmail(
        to=to,
        subject="Verify your university email on UniHub",
        html=_render("University Email Verification", body),
    )


def application_email(
    to: str,
    client_name: str,
    job_title: str,
    freelancer_name: str,
    freelancer_email: str,
    message: str,
    phone: Optional[str] = None,
) -> OutgoingEmail:
    details = _line("Name", freelancer_name) + _line("Email", freelancer_email)
    if phone:
        details += _line("Phone", phone)
    body = (
        f"<p>Hello <strong>{escape(client_name)}</strong>,</p>"
        "<p>You have received a new application for your job posting on <strong>UniHub</strong>.</p>"
        f'<div class="box">{_line("Job Title", job_title)}</div>'
        f'<div class="box">{details}</div>'
        f'<div class="box"><p><span class="label">Message from Freelancer:</span></p><p>{escape(message)}</p></div>'
        "<p>Please log in to the UniHub app to view all applications and manage your job posting.</p>"
    )
    return OutgoingEmail(
        to=to,
        subject="New Application for Your Job on UniHub",
        html=_render("New Job Application", body),
    )


def interest_email(
    to: str,
    seller_name: str,
    product_title: str,
    price: float,
    buyer_name: str,
    buyer_email: str,
    message: str,
    phone: Optional[str] = None,
) -> OutgoingEmail:
    buyer = _line("Buyer Name", buyer_name) + _line("Buyer Email", buyer_email)
    if phone:
        buyer += _line("Phone", phone)
    body = (
        f"<p>Hello {escape(seller_name)},</p>"
        "<p>Someone has shown interest in your product listing on UniHub.</p>"
        f'<div class="box">{_line("Product Title", product_title)}{_line("Price", f"₹{price:g}")}</div>'
        f'<div class="box">{buyer}</div>'
        f'<div class="box"><p><span class="label">Message:</span></p><p>{escape(message)}</p></div>'
        "<p>Please contact the buyer directly using the information provided above.</p>"
    )
    return OutgoingEmail(
        to=to,
        subject="Interest in Your Product on UniHub",
        html=_render("Product Interest Notification", body),
    )
