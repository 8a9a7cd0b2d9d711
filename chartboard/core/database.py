"""
Database models and ORM configuration for the dashboard document store.
"""

from sqlalchemy import (
    Column, String, Integer, DateTime, Text, Boolean, ForeignKey, Index
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy import create_engine
from datetime import datetime

Base = declarative_base()


class DashboardRecord(Base):
    """Named dashboard."""
    __tablename__ = 'dashboards'

    name = Column(String(140), primary_key=True)
    dashboard_name = Column(String(140))
    is_default = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    modified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    chart_links = relationship(
        "DashboardChartLink",
        back_populates="dashboard",
        cascade="all, delete-orphan",
        order_by="DashboardChartLink.idx"
    )


class DashboardChartRecord(Base):
    """Chart definition shown on one or more dashboards."""
    __tablename__ = 'dashboard_charts'

    name = Column(String(140), primary_key=True)
    chart_name = Column(String(140))
    source = Column(String(140), nullable=False)
    width = Column(String(10), default="Half")
    type = Column(String(20), default="Line")
    color = Column(String(20))
    filters_json = Column(Text, default="{}")
    last_synced_on = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    modified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('idx_dashboard_charts_source', 'source'),
    )


class DashboardChartLink(Base):
    """Ordered link between a dashboard and its charts."""
    __tablename__ = 'dashboard_chart_links'

    id = Column(Integer, primary_key=True, autoincrement=True)
    dashboard_name = Column(String(140), ForeignKey('dashboards.name'), nullable=False)
    chart_name = Column(String(140), ForeignKey('dashboard_charts.name'), nullable=False)
    idx = Column(Integer, default=0)

    # Relationships
    dashboard = relationship("DashboardRecord", back_populates="chart_links")
    chart = relationship("DashboardChartRecord")

    __table_args__ = (
        Index('idx_chart_links_dashboard', 'dashboard_name'),
        Index('idx_chart_links_order', 'dashboard_name', 'idx'),
    )


class DatabaseManager:
    """Database connection and session management."""

    def __init__(self, database_url: str, echo: bool = False):
        self.engine = create_engine(database_url, echo=echo)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_tables(self):
        """Create all database tables."""
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self):
        """Drop all database tables."""
        Base.metadata.drop_all(bind=self.engine)

    def get_session(self):
        """Get database session."""
        return self.SessionLocal()
