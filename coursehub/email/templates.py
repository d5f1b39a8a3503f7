"""Email templates for CourseHub.

All interpolated values are HTML-escaped; the learner's refund message in
particular is free text.
"""

from datetime import datetime
from html import escape


BASE_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title} - CourseHub</title>
</head>
<body style="margin: 0; padding: 0; background-color: #F8FAFC; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;">
  <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background-color: #F8FAFC;">
    <tr>
      <td align="center" style="padding: 40px 20px;">
        <table role="presentation" width="600" cellpadding="0" cellspacing="0" style="background-color: #FFFFFF; border-radius: 12px; max-width: 600px;">
          <tr>
            <td style="padding: 28px 40px 20px; text-align: center; border-bottom: 1px solid #E5E7EB;">
              <h1 style="margin: 0; font-size: 26px; font-weight: 700; color: #1D4ED8;">CourseHub</h1>
            </td>
          </tr>
          <tr>
            <td style="padding: 36px 40px;">
              {content}
            </td>
          </tr>
          <tr>
            <td style="padding: 20px 40px; background-color: #F9FAFB; border-top: 1px solid #E5E7EB; border-radius: 0 0 12px 12px;">
              <p style="margin: 0; font-size: 12px; color: #6B7280; text-align: center;">
                &copy; {year} CourseHub. Sent automatically by the course platform.
              </p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""


# ==============================================================================
# Template: Refund Request Notification (to the administrator)
# ==============================================================================

REFUND_NOTIFICATION_CONTENT = """
<h2 style="margin: 0 0 16px; font-size: 22px; font-weight: 600; color: #111827;">
  New refund request
</h2>

<p style="margin: 0 0 8px; font-size: 15px; color: #374151;">
  <strong>User:</strong> {user_name} ({user_email})
</p>
<p style="margin: 0 0 16px; font-size: 15px; color: #374151;">
  <strong>Course:</strong> {course_name}
</p>

<p style="margin: 0 0 8px; font-size: 15px; color: #374151;"><strong>Message:</strong></p>
<div style="border: 1px solid #D1D5DB; border-radius: 8px; padding: 12px 16px; margin: 0 0 24px; white-space: pre-wrap; color: #111827;">{message}</div>

<p style="margin: 0; font-size: 14px; color: #6B7280;">
  Reply to this email to contact the user directly, or open the administration
  panel to process the request.
</p>
"""


def refund_notification_subject(course_name: str) -> str:
    return f"New refund request: {course_name}"


def render_refund_notification(
    user_name: str,
    user_email: str,
    course_name: str,
    message: str,
) -> tuple[str, str]:
    """Render the administrator notification for a refund request.

    Returns:
        Tuple of (html_content, plain_text_content)
    """
    content = REFUND_NOTIFICATION_CONTENT.format(
        user_name=escape(user_name),
        user_email=escape(user_email),
        course_name=escape(course_name),
        message=escape(message),
    )
    year = datetime.now().year
    html = BASE_TEMPLATE.format(
        title="New refund request",
        content=content,
        year=year,
    )

    plain_text = f"""
New refund request - CourseHub

User: {user_name} ({user_email})
Course: {course_name}

Message:
{message}

Reply to this email to contact the user directly, or open the administration
panel to process the request.

---
(c) {year} CourseHub.
"""
    return html, plain_text.strip()
