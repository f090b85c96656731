from sqlalchemy import Column, Date, DateTime, Integer, LargeBinary, String, Text, ForeignKey, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship
from hv_maintenance.database import Base

class MaintenanceRecord(Base):
    __tablename__ = "maintenance_record"
    # Insertion order; lists are seq DESC (most recent first). AUTOINCREMENT keeps
    # it monotonic even after the newest record is deleted
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, nullable=False, index=True)

    municipality_id = Column(String(32), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    nature = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="PENDING", index=True)
    technician = Column(String(255), nullable=False)
    ai_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    stages = relationship(
        "MaintenanceStage",
        back_populates="record",
        order_by="MaintenanceStage.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("status IN ('PENDING', 'COMPLETED')", name="ck_record_status"),
        {"sqlite_autoincrement": True},
    )

class MaintenanceStage(Base):
    __tablename__ = "maintenance_stage"
    pk = Column(Integer, primary_key=True, autoincrement=True)
    record_id = Column(String(64), ForeignKey("maintenance_record.id", ondelete="CASCADE"), nullable=False, index=True)
    id = Column(String(64), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")

    record = relationship("MaintenanceRecord", back_populates="stages")
    images = relationship(
        "MaintenanceImage",
        back_populates="stage",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("record_id", "id", name="uq_stage_per_record"),
    )

    def image_in(self, slot):
        for image in self.images:
            if image.slot == slot:
                return image
        return None

    # Read by StageOut (from_attributes)
    @property
    def before(self):
        return self.image_in("before")

    @property
    def during(self):
        return self.image_in("during")

    @property
    def after(self):
        return self.image_in("after")

class MaintenanceImage(Base):
    __tablename__ = "maintenance_image"
    pk = Column(Integer, primary_key=True, autoincrement=True)
    stage_pk = Column(Integer, ForeignKey("maintenance_stage.pk", ondelete="CASCADE"), nullable=False, index=True)
    slot = Column(String(10), nullable=False)
    id = Column(String(64), nullable=False)

    data = Column(LargeBinary, nullable=False)
    mime_type = Column(String(64), nullable=False, default="image/jpeg")
    description = Column(Text, nullable=True)

    stage = relationship("MaintenanceStage", back_populates="images")

    __table_args__ = (
        # One image per slot
        UniqueConstraint("stage_pk", "slot", name="uq_image_per_slot"),
        UniqueConstraint("stage_pk", "id", name="uq_image_id_per_stage"),
        CheckConstraint("slot IN ('before', 'during', 'after')", name="ck_image_slot"),
    )
