"""Outbound email for one-time codes."""
import logging
import smtplib
from email.message import EmailMessage

logger = logging.getLogger(__name__)

class EmailDeliveryError(Exception):
    """The SMTP server refused or could not be reached."""

class EmailService:
    """Sends plain text mail over SMTP.

    Without an ``SMTP_HOST`` nothing is sent and the message is logged,
    which is how development and test setups read their codes.
    """
    
    def __init__(self, host=None, port=587, user=None, password=None, use_tls=True, sender=None,
                 otp_expiry_minutes=10):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.sender = sender or user
        self.otp_expiry_minutes = otp_expiry_minutes
    
    @classmethod
    def from_config(cls, config) -> 'EmailService':
        return cls(
            host=config.get('SMTP_HOST'),
            port=config.get('SMTP_PORT', 587),
            user=config.get('SMTP_USER'),
            password=config.get('SMTP_PASSWORD'),
            use_tls=config.get('SMTP_USE_TLS', True),
            sender=config.get('MAIL_FROM'),
            otp_expiry_minutes=config.get('OTP_EXPIRY_MINUTES', 10)
        )
    
    @property
    def configured(self) -> bool:
        return bool(self.host)
    
    def send(self, to_email: str, subject: str, body: str) -> None:
        if not self.configured:
            logger.info('SMTP not configured, email to %s not sent. Subject: %s\n%s', to_email, subject, body)
            return
        
        message = EmailMessage()
        message['Subject'] = subject
        message['From'] = self.sender
        message['To'] = to_email
        message.set_content(body)
        
        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as server:
                if self.use_tls:
                    server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error('Error sending email to %s: %s', to_email, e)
            raise EmailDeliveryError('Email could not be sent') from e
        
        logger.info('Email sent to %s', to_email)
    
    def send_otp(self, to_email: str, otp: str, name: str = '', purpose: str = 'email verification') -> None:
        greeting = f'Hello {name},' if name else 'Hello,'
        body = (
            f'{greeting}\n\n'
            f'Your one-time password for {purpose} is: {otp}\n'
            f'It is valid for {self.otp_expiry_minutes} minutes.\n\n'
            'If you did not request this code, please ignore this email.\n'
        )
        self.send(to_email, 'Your OTP for Campus Attendance', body)
