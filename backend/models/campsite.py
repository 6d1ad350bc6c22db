"""
Campsite Model - The authoritative inventory, as far as candidate ingestion sees it.

Only the columns the duplicate matcher reads and the local campsite creator
writes are mapped here; listings, photos and ownership live elsewhere.
"""
import uuid

from models.database import db, utcnow


class Campsite(db.Model):
    __tablename__ = "campsites"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(255), nullable=False)
    campsite_type = db.Column(db.String(30))
    description = db.Column(db.Text)
    address = db.Column(db.String(500))
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    phone = db.Column(db.String(50))
    website = db.Column(db.String(500))
    email = db.Column(db.String(255))
    price_min = db.Column(db.Integer)
    price_max = db.Column(db.Integer)
    rating_average = db.Column(db.Float, default=0)
    review_count = db.Column(db.Integer, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    # Set when the row was created by importing a candidate
    source_candidate_id = db.Column(db.String(36), unique=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.Index("ix_campsites_lat_lng", "latitude", "longitude"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "campsite_type": self.campsite_type,
            "description": self.description,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "phone": self.phone,
            "website": self.website,
            "email": self.email,
            "price_min": self.price_min,
            "price_max": self.price_max,
            "rating_average": self.rating_average,
            "review_count": self.review_count,
            "is_active": self.is_active,
            "source_candidate_id": self.source_candidate_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Campsite {self.id[:8]} {self.name!r}>"
