"""Push notifications for saved attendance."""
from dataclasses import dataclass, field
from typing import List, Optional
import firebase_admin
from firebase_admin import credentials, exceptions, messaging
from flask import current_app
from campus_attendance import db
from campus_attendance.models import StudentDeviceToken
from campus_attendance.utils.dates import ms_to_day
from campus_attendance.utils.helpers import chunked

# Provider codes meaning the token will never be deliverable again
INVALID_TOKEN_CODES = {'unregistered', 'invalid-argument'}

@dataclass
class TokenResult:
    token: str
    success: bool
    error_code: Optional[str] = None

@dataclass
class BatchResult:
    success_count: int
    failure_count: int
    responses: List[TokenResult] = field(default_factory=list)

class FirebaseDispatcher:
    """Multicast sender backed by firebase-admin messaging."""
    
    def __init__(self, firebase_app):
        self.firebase_app = firebase_app
    
    @classmethod
    def from_credentials(cls, path: str, name: str = 'campus-attendance') -> 'FirebaseDispatcher':
        try:
            firebase_app = firebase_admin.get_app(name)
        except ValueError:
            firebase_app = firebase_admin.initialize_app(credentials.Certificate(path), name=name)
        return cls(firebase_app)
    
    @staticmethod
    def error_code(exc) -> Optional[str]:
        if exc is None:
            return None
        if isinstance(exc, messaging.UnregisteredError):
            return 'unregistered'
        if isinstance(exc, exceptions.InvalidArgumentError):
            return 'invalid-argument'
        return str(getattr(exc, 'code', 'unknown')).lower()
    
    def send_multicast(self, tokens: List[str], title: str, body: str) -> BatchResult:
        message = messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body)
        )
        response = messaging.send_each_for_multicast(message, app=self.firebase_app)
        results = [
            TokenResult(token=token, success=r.success, error_code=None if r.success else self.error_code(r.exception))
            for token, r in zip(tokens, response.responses)
        ]
        return BatchResult(response.success_count, response.failure_count, results)

def build_dispatcher(app):
    """Firebase dispatcher when credentials are configured, else None."""
    path = app.config.get('FIREBASE_CREDENTIALS_FILE')
    if not path:
        app.logger.debug('FIREBASE_CREDENTIALS_FILE not set, push notifications disabled')
        return None
    return FirebaseDispatcher.from_credentials(path)

class NotificationService:
    @staticmethod
    def notify_attendance(school_class, student_ids: List[int], slot_number: int, date_ms: int) -> dict:
        """Tell the given students their attendance was marked.

        Failed batches are logged and skipped. Tokens the provider reports as
        dead are removed. Returns counts for logging.
        """
        summary = {'sent': 0, 'failed': 0, 'pruned': 0}
        dispatcher = current_app.extensions.get('notifier')
        if dispatcher is None:
            current_app.logger.debug('No notification dispatcher configured')
            return summary
        
        if not student_ids:
            return summary
        
        rows = StudentDeviceToken.query.filter(StudentDeviceToken.student_id.in_(student_ids)).all()
        tokens = list(dict.fromkeys(row.token for row in rows if row.token))
        if not tokens:
            return summary
        
        title = 'Attendance Updated'
        body = (
            f'Your attendance for {school_class.display_name}, Slot {slot_number} '
            f'on {ms_to_day(date_ms)} has been marked.'
        )
        
        batch_size = current_app.config.get('NOTIFICATION_BATCH_SIZE', 500)
        batches = list(chunked(tokens, batch_size))
        invalid_tokens = []
        
        for index, batch in enumerate(batches, start=1):
            try:
                result = dispatcher.send_multicast(batch, title, body)
            except Exception as e:
                current_app.logger.error(f'Error sending notification batch {index}/{len(batches)}: {e}')
                summary['failed'] += len(batch)
                continue
            
            current_app.logger.info(
                f'Notification batch {index}/{len(batches)}: '
                f'success={result.success_count}, failure={result.failure_count}'
            )
            summary['sent'] += result.success_count
            summary['failed'] += result.failure_count
            invalid_tokens.extend(
                r.token for r in result.responses
                if not r.success and r.error_code in INVALID_TOKEN_CODES
            )
        
        if invalid_tokens:
            summary['pruned'] = StudentDeviceToken.query.filter(
                StudentDeviceToken.token.in_(invalid_tokens)
            ).delete(synchronize_session=False)
            db.session.commit()
            current_app.logger.warning(f'Removed {summary["pruned"]} invalid device tokens')
        
        return summary
