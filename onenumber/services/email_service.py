import logging
import os
from typing import Dict, Any, Optional

from flask import current_app
from flask_mail import Message
from jinja2 import Environment, FileSystemLoader, Template, select_autoescape

from onenumber.extensions import mail

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'templates', 'emails')

logger = logging.getLogger(__name__)


class EmailTemplateCache:
    """
    Compiled email templates keyed by template name.

    Templates are static files, so entries are compiled on first use and
    kept for the life of the process.
    """

    def __init__(self, template_dir=TEMPLATE_DIR):
        self.template_dir = template_dir
        # cache_size=0: the dict below is the only cache
        self._env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(['html']),
            cache_size=0
        )
        self._templates: Dict[str, Template] = {}

    def get(self, name: str) -> Template:
        template = self._templates.get(name)
        if template is None:
            template = self._env.get_template(f"{name}.html")
            self._templates[name] = template
        return template

    def render(self, name: str, **context) -> str:
        return self.get(name).render(**context)

    def __contains__(self, name):
        return name in self._templates

    def __len__(self):
        return len(self._templates)


def init_email_templates(app, template_dir=TEMPLATE_DIR):
    """Attach one template cache to the app"""
    app.extensions['email_templates'] = EmailTemplateCache(template_dir)


class EmailService:
    """Subscription emails sent through Flask-Mail. Send methods return bool and never raise."""

    def __init__(self, template_cache: Optional[EmailTemplateCache] = None):
        self.logger = logger
        self.templates = template_cache or current_app.extensions['email_templates']

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _base_context(self) -> Dict[str, Any]:
        config = current_app.config
        return {
            'app_name': config.get('APP_NAME'),
            'logo_url': config.get('LOGO_URL'),
            'support_email': config.get('SUPPORT_EMAIL'),
            'frontend_url': config.get('FRONTEND_URL') or '',
            'admin_portal_url': config.get('ADMIN_PORTAL_URL') or ''
        }

    def send_email(self, to_email, subject, template, data) -> bool:
        try:
            context = self._base_context()
            context.update(data)

            msg = Message(
                subject=subject,
                recipients=[to_email],
                sender=current_app.config.get('MAIL_DEFAULT_SENDER')
            )
            msg.html = self.templates.render(template, **context)
            msg.body = f"Hello,\n\nPlease view this email in HTML format.\n\n" \
                       f"Best regards,\nThe {context['app_name']} Team"

            mail.send(msg)
            self.logger.info(f"Email sent to {to_email} with template: {template}")
            return True

        except Exception as e:
            self.logger.error(f"❌ Failed to send email to {to_email} with template {template}: {e}")
            return False

    def send_admin_email(self, admin, template, subject, data) -> bool:
        admin_email = current_app.config.get('ADMIN_EMAIL') or getattr(admin, 'email', None)
        if not admin_email:
            self.logger.warning(f"No admin email configured, skipping {template}")
            return False
        return self.send_email(admin_email, subject, template, data)

    # =========================================================================
    # SUBSCRIPTION EMAILS
    # =========================================================================

    def _subscription_data(self, subscription) -> Dict[str, Any]:
        return {
            'id': subscription.id,
            'phone_number': _phone_number(subscription),
            'plan': subscription.plan,
            'price': f"{float(subscription.price):.2f}",
            'start_date': _date(subscription.start_date),
            'end_date': _date(subscription.end_date),
            'auto_renew': subscription.auto_renew
        }

    def _admin_data(self, user, subscription) -> Dict[str, Any]:
        return {
            'user': {
                'id': user.id,
                'first_name': user.first_name,
                'last_name': user.last_name,
                'email': user.email
            },
            'subscription': self._subscription_data(subscription)
        }

    def _dashboard_url(self, path='') -> str:
        return f"{current_app.config.get('FRONTEND_URL') or ''}/dashboard/subscriptions{path}"

    def send_subscription_created_email(self, user, subscription, admin) -> bool:
        phone_number = _phone_number(subscription)
        self._report_admin_copy(self.send_admin_email(
            admin, 'admin-new-subscription', f"New Subscription: {phone_number}",
            self._admin_data(user, subscription)
        ), 'admin-new-subscription')

        return self.send_email(user.email, 'Subscription Confirmation', 'subscription-created', {
            'user': {'first_name': user.first_name, 'last_name': user.last_name},
            'subscription': self._subscription_data(subscription),
            'dashboard_url': self._dashboard_url()
        })

    def send_subscription_expiring_email(self, user, subscription, days_remaining) -> bool:
        return self.send_email(
            user.email,
            f"Your Subscription Expires in {days_remaining} Days",
            'subscription-expiring',
            {
                'user': {'first_name': user.first_name, 'last_name': user.last_name},
                'subscription': self._subscription_data(subscription),
                'days_remaining': days_remaining,
                'renew_url': self._dashboard_url(f"/{subscription.id}/renew")
            }
        )

    def send_subscription_expired_email(self, user, subscription, admin) -> bool:
        phone_number = _phone_number(subscription)
        self._report_admin_copy(self.send_admin_email(
            admin, 'admin-subscription-expired', f"Subscription Expired: {phone_number}",
            self._admin_data(user, subscription)
        ), 'admin-subscription-expired')

        return self.send_email(user.email, 'Your Subscription Has Expired', 'subscription-expired', {
            'user': {'first_name': user.first_name, 'last_name': user.last_name},
            'subscription': self._subscription_data(subscription),
            'renew_url': self._dashboard_url(f"/{subscription.id}/renew")
        })

    def send_subscription_renewed_email(self, user, subscription, admin) -> bool:
        phone_number = _phone_number(subscription)
        self._report_admin_copy(self.send_admin_email(
            admin, 'admin-subscription-renewed', f"Subscription Renewed: {phone_number}",
            self._admin_data(user, subscription)
        ), 'admin-subscription-renewed')

        return self.send_email(user.email, 'Subscription Renewed Successfully', 'subscription-renewed', {
            'user': {'first_name': user.first_name, 'last_name': user.last_name},
            'subscription': self._subscription_data(subscription),
            'dashboard_url': self._dashboard_url()
        })

    def send_subscription_cancelled_email(self, user, subscription, admin) -> bool:
        phone_number = _phone_number(subscription)
        self._report_admin_copy(self.send_admin_email(
            admin, 'admin-subscription-cancelled', f"Subscription Cancelled: {phone_number}",
            self._admin_data(user, subscription)
        ), 'admin-subscription-cancelled')

        return self.send_email(user.email, 'Subscription Cancelled', 'subscription-cancelled', {
            'user': {'first_name': user.first_name, 'last_name': user.last_name},
            'subscription': self._subscription_data(subscription),
            'dashboard_url': self._dashboard_url()
        })

    # =========================================================================
    # ACCOUNT EMAILS
    # =========================================================================

    def send_account_activation_email(self, user, start_date) -> bool:
        return self.send_email(user.email, 'Your Account Has Been Activated', 'account-activation', {
            'user': {'first_name': user.first_name, 'last_name': user.last_name},
            'start_date': _date(start_date),
            'dashboard_url': f"{current_app.config.get('FRONTEND_URL') or ''}/dashboard"
        })

    def _report_admin_copy(self, sent, template):
        if not sent:
            self.logger.warning(f"Admin copy {template} was not sent")


def _phone_number(subscription) -> str:
    phone_number = getattr(subscription, 'phone_number', None)
    return phone_number.number if phone_number else 'Unknown number'


def _date(value) -> str:
    return value.strftime('%B %d, %Y') if value else ''
