"""Mail client for notifications about new laboratories."""

import abc
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Optional, Union

from email_validator import validate_email

import config
from labor.domain.model import Labor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SendSuccess:
    pass


@dataclass(frozen=True)
class SendError:
    error: Exception


@dataclass(frozen=True)
class AuthenticationError:
    error: Exception


@dataclass(frozen=True)
class InternalError:
    error: Exception


SendResult = Union[SendSuccess, SendError, AuthenticationError, InternalError]


class AbstractMailer(abc.ABC):
    """Sends a notification that a new labor was created. Never raises."""

    @abc.abstractmethod
    def send(self, neues_labor: Labor) -> SendResult:
        raise NotImplementedError


class SmtpMailer(AbstractMailer):
    def __init__(self, mail_config: Optional[dict] = None):
        mail_config = mail_config or config.get_mail_config()
        self.host = mail_config["host"]
        self.port = mail_config["port"]
        self.username = mail_config.get("username")
        self.password = mail_config.get("password")
        self.use_tls = mail_config.get("use_tls", False)
        self.timeout = mail_config.get("timeout", 10)
        self.sender = validate_email(mail_config["sender"], check_deliverability=False).normalized
        self.recipient = validate_email(mail_config["recipient"], check_deliverability=False).normalized

    def build_message(self, neues_labor: Labor) -> MIMEText:
        body = f"<b>Neues Labor:</b> <i>{neues_labor.name}</i>"
        logger.debug(f"Mail body: {body}")
        msg = MIMEText(body, "html", "utf-8")
        msg["From"] = self.sender
        msg["To"] = self.recipient
        msg["Subject"] = f"Neues Labor {neues_labor.id}"
        return msg

    def send(self, neues_labor):
        msg = self.build_message(neues_labor)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls(context=ssl.create_default_context())
                if self.username:
                    server.login(self.username, self.password)
                server.sendmail(self.sender, [self.recipient], msg.as_string())
            logger.info(f"Sent mail for new labor {neues_labor.id}")
            return SendSuccess()
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"Mail server rejected credentials: {e}")
            return AuthenticationError(e)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send mail for labor {neues_labor.id}: {e}")
            return SendError(e)
        except Exception as e:
            logger.error(f"Unexpected error sending mail for labor {neues_labor.id}: {e}")
            return InternalError(e)
