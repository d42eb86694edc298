"""
Email service for signature invitations and completion notices
Templates are rendered with jinja2 and delivered through Resend
"""

import logging
from typing import Dict, Any, Optional

import jinja2
import resend

from config import Settings

logger = logging.getLogger(__name__)


class EmailService:
    """Renders built-in templates and sends them through Resend"""

    def __init__(self, settings: Settings):
        self.from_email = settings.DEFAULT_FROM_EMAIL
        self.app_base_url = settings.APP_BASE_URL.rstrip("/")
        self.template_env = jinja2.Environment(
            loader=jinja2.DictLoader(self._get_built_in_templates()),
            autoescape=jinja2.select_autoescape(['html', 'xml'])
        )

        self.enabled = bool(settings.RESEND_API_KEY)
        if self.enabled:
            resend.api_key = settings.RESEND_API_KEY
            logger.info("Resend email provider initialized")
        else:
            logger.warning("RESEND_API_KEY not set, emails will be logged only")

    def _get_built_in_templates(self) -> Dict[str, str]:
        return {
            'signature_request.html': '''
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h1 style="color: #1f2937; border-bottom: 2px solid #e5e7eb; padding-bottom: 12px;">Signature Required</h1>
                {% if store_name %}<p style="color: #6b7280; font-size: 16px;"><strong>Store:</strong> {{ store_name }}</p>{% endif %}
                <p style="color: #374151;">Hello {{ signer_name }},</p>
                <p style="color: #374151;">{{ sender_name }} has requested your signature on the document: <strong>{{ title }}</strong></p>
                {% if message %}
                <div style="margin: 20px 0; padding: 16px; background-color: #f3f4f6; border-radius: 8px;">
                    <p style="color: #374151; margin: 0; font-style: italic;">"{{ message }}"</p>
                </div>
                {% endif %}
                <div style="text-align: center; margin: 32px 0;">
                    <a href="{{ signature_url }}" style="display: inline-block; background-color: #2563eb; color: white; padding: 12px 32px; text-decoration: none; border-radius: 6px;">View &amp; Sign Document</a>
                </div>
                <p style="color: #6b7280; font-size: 14px;">Or copy and paste this link into your browser:<br>
                    <a href="{{ signature_url }}" style="color: #2563eb; word-break: break-all;">{{ signature_url }}</a></p>
                <p style="color: #374151; font-size: 14px;"><strong>Note:</strong> This request expires on {{ expires_at }}. No account is required to sign.</p>
            </div>
            ''',

            'signature_request.txt': '''
            Signature Required
            {% if store_name %}
            Store: {{ store_name }}
            {% endif %}
            Hello {{ signer_name }},

            {{ sender_name }} has requested your signature on the document: {{ title }}
            {% if message %}
            "{{ message }}"
            {% endif %}
            Sign here: {{ signature_url }}

            This request expires on {{ expires_at }}. No account is required to sign.
            ''',

            'signature_completed.html': '''
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h1 style="color: #1f2937; border-bottom: 2px solid #22c55e; padding-bottom: 12px;">Document Signed</h1>
                <p style="color: #374151;">Hello {{ owner_name }},</p>
                <p style="color: #374151;"><strong>{{ signer_name }}</strong> has signed the document: <strong>{{ title }}</strong></p>
                <div style="margin: 24px 0; padding: 16px; background-color: #f0fdf4; border-left: 4px solid #22c55e; border-radius: 4px;">
                    <p style="color: #166534; margin: 0;"><strong>Signed:</strong> {{ signed_at }}</p>
                </div>
                <div style="text-align: center; margin: 32px 0;">
                    <a href="{{ dashboard_url }}" style="display: inline-block; background-color: #2563eb; color: white; padding: 12px 32px; text-decoration: none; border-radius: 6px;">View in Dashboard</a>
                </div>
            </div>
            ''',

            'signature_completed.txt': '''
            Document Signed

            Hello {{ owner_name }},

            {{ signer_name }} has signed the document: {{ title }}
            Signed: {{ signed_at }}

            View in dashboard: {{ dashboard_url }}
            ''',
        }

    def signing_url(self, access_token: str) -> str:
        return f"{self.app_base_url}/sign/t/{access_token}"

    def dashboard_url(self) -> str:
        return f"{self.app_base_url}/dashboard"

    def render(self, template_name: str, template_data: Dict[str, Any]) -> Dict[str, str]:
        """Render the html and text variants of a template"""
        html_content = self.template_env.get_template(f"{template_name}.html").render(**template_data)
        text_content = self.template_env.get_template(f"{template_name}.txt").render(**template_data)
        return {'html': html_content, 'text': text_content}

    async def send_email(
        self,
        to_email: str,
        subject: str,
        template_name: str,
        template_data: Dict[str, Any],
        from_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Send an email; never raises, the result says whether it went out"""
        try:
            content = self.render(template_name, template_data)
        except jinja2.TemplateError as e:
            logger.error(f"Email template {template_name} failed to render: {e}")
            return {'success': False, 'error': str(e), 'provider_used': None}

        if not self.enabled:
            logger.info(f"Email not sent (no provider). To: {to_email}, Subject: {subject}")
            return {'success': False, 'error': 'No email provider configured', 'provider_used': None}

        try:
            response = resend.Emails.send({
                "from": from_email or self.from_email,
                "to": [to_email],
                "subject": subject,
                "html": content['html'],
                "text": content['text'],
            })
            return {
                'success': True,
                'provider_used': 'resend',
                'message_id': response.get('id') if isinstance(response, dict) else None,
            }
        except Exception as e:
            logger.error(f"Resend delivery failed for {to_email}: {e}")
            return {'success': False, 'error': str(e), 'provider_used': 'resend'}
