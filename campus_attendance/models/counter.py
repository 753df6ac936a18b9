"""Per-tenant class number counter."""
from datetime import datetime
from sqlalchemy import update
from campus_attendance import db
from campus_attendance.models.base import BaseModel
from campus_attendance.utils.sql import dialect_insert

class SequenceCounter(BaseModel):
    """Last class number handed out for a tenant."""
    
    __tablename__ = 'sequence_counters'
    
    tenant_id = db.Column(db.Integer, db.ForeignKey('tenants.id'), nullable=False, unique=True)
    seq = db.Column(db.Integer, nullable=False, default=0)
    
    @classmethod
    def next_value(cls, tenant_id: int) -> int:
        """Atomically increment and return the tenant's counter.

        Runs inside the caller's transaction; no commit.
        """
        stmt = (
            update(cls)
            .where(cls.tenant_id == tenant_id)
            .values(seq=cls.seq + 1, updated_at=datetime.utcnow())
            .returning(cls.seq)
            .execution_options(synchronize_session=False)
        )
        value = db.session.execute(stmt).scalar_one_or_none()
        if value is not None:
            return value
        
        # Missing row (tenant created before counters existed): create it,
        # tolerating a concurrent creator, then increment again.
        now = datetime.utcnow()
        db.session.execute(
            dialect_insert(cls)
            .values(tenant_id=tenant_id, seq=0, created_at=now, updated_at=now)
            .on_conflict_do_nothing(index_elements=['tenant_id'])
        )
        return db.session.execute(stmt).scalar_one()
    
    def __repr__(self) -> str:
        return f'<SequenceCounter tenant={self.tenant_id} seq={self.seq}>'
