from flask import current_app, render_template
from tiva.services.errors import ServiceError
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import logging
import smtplib

logger = logging.getLogger(__name__)


class EmailDeliveryError(ServiceError):
    status_code = 500


def _build_message(to, subject, text, html, sender):
    msg = MIMEMultipart('alternative')
    msg['Subject'] = subject
    msg['From'] = sender
    msg['To'] = to
    msg.attach(MIMEText(text, 'plain', 'utf-8'))
    if html:
        msg.attach(MIMEText(html, 'html', 'utf-8'))
    return msg


def send_mail(to, subject, text, html=None):
    """Deliver one message through the configured transport.

    ``console`` only writes the message to the log. Raises
    EmailDeliveryError when SMTP delivery fails.
    """
    cfg = current_app.config
    transport = (cfg.get('MAIL_TRANSPORT') or 'console').lower()
    sender = cfg.get('MAIL_SENDER')

    if transport == 'console':
        logger.info(
            "MAIL to=%s subject=%s\n%s", to, subject, text)
        return True

    if transport != 'smtp':
        raise EmailDeliveryError(f'Unknown mail transport: {transport}')

    username = cfg.get('MAIL_USERNAME')
    password = cfg.get('MAIL_PASSWORD')
    if not (sender and username and password and to):
        logger.warning(
            "SMTP send aborted: incomplete credentials or recipient")
        raise EmailDeliveryError('Email service is not configured')

    msg = _build_message(to, subject, text, html, sender)
    try:
        with smtplib.SMTP(cfg['MAIL_SMTP'], cfg['MAIL_PORT'],
                          timeout=15) as server:
            server.starttls()
            server.login(username, password)
            server.sendmail(sender, [to], msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"SMTP send to {to} failed: {e}", exc_info=True)
        raise EmailDeliveryError(
            'Could not send the email. Please try again later.')
    logger.info(f"Mail '{subject}' sent to {to}")
    return True


def send_password_reset_email(user, reset_url):
    context = {'name': user.name, 'reset_url': reset_url}
    return send_mail(
        user.email,
        'Reset your password - Tiva Store',
        render_template('email/password_reset.txt', **context),
        render_template('email/password_reset.html', **context),
    )


def send_welcome_email(user, store):
    context = {
        'name': user.name,
        'store_name': store.name,
        'dashboard_url': current_app.config['FRONTEND_URL'].rstrip('/')
        + '/dashboard',
    }
    return send_mail(
        user.email,
        'Welcome to Tiva Store',
        render_template('email/welcome.txt', **context),
        render_template('email/welcome.html', **context),
    )
