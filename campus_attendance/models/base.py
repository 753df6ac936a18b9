"""Base model class with common functionality."""
from datetime import datetime
from typing import Dict, Any
from campus_attendance import db

class BaseModel(db.Model):
    """Base model class with common fields and methods."""
    
    __abstract__ = True
    
    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    def to_dict(self, exclude: list = None) -> Dict[str, Any]:
        """Convert instance to dictionary."""
        exclude = exclude or []
        result = {}
        
        for column in self.__table__.columns:
            key = column.name
            if key not in exclude:
                value = getattr(self, key)
                if isinstance(value, datetime):
                    value = value.isoformat()
                result[key] = value
        
        return result
    
    @classmethod
    def get_owned(cls, id: int, tenant_id: int) -> 'BaseModel':
        """Get instance by ID only when it belongs to ``tenant_id``."""
        return cls.query.filter_by(id=id, tenant_id=tenant_id).first()
    
    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.id}>'
