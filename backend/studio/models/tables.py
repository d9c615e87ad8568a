from sqlalchemy import Column, ForeignKey, Index, Integer, Text, UniqueConstraint, text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Clients(Base):
    __tablename__ = 'clients'

    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True)
    status = Column(Text, nullable=False, server_default=text("'active'"))
    # block / circuit_vip / circuit_dropin / core_buddy
    client_type = Column(Text, nullable=False, server_default=text("'block'"))
    id = Column(Integer, primary_key=True)
    signup_source = Column(Text)
    onboarding_complete = Column(Integer, nullable=False, server_default=text('0'))

    # One-to-one block
    total_sessions = Column(Integer, nullable=False, server_default=text('0'))
    session_duration = Column(Integer, nullable=False, server_default=text('45'))
    block_start_date = Column(Text)
    block_end_date = Column(Text)

    # Circuit
    circuit_access = Column(Integer, nullable=False, server_default=text('0'))
    circuit_strikes = Column(Integer, nullable=False, server_default=text('0'))
    circuit_ban_until = Column(Text)

    # Subscription
    tier = Column(Text, nullable=False, server_default=text("'free'"))
    subscription_status = Column(Text)
    stripe_customer_id = Column(Text, index=True)
    stripe_subscription_id = Column(Text)

    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    sessions = relationship('Sessions', back_populates='client')
    push_subscriptions = relationship('PushSubscriptions', back_populates='client')
    badges = relationship('ClientBadges', back_populates='client')
    forms = relationship('ClientForms', back_populates='client')


class Sessions(Base):
    """One-to-one booking against the trainer's calendar."""
    __tablename__ = 'sessions'

    date = Column(Text, nullable=False, index=True)  # YYYY-MM-DD
    time = Column(Text, nullable=False)              # HH:MM
    duration_minutes = Column(Integer, nullable=False, server_default=text('45'))
    id = Column(Integer, primary_key=True)
    client_id = Column(ForeignKey('clients.id', ondelete='SET NULL'))
    client_name = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    client = relationship('Clients', back_populates='sessions')
    reschedule_requests = relationship(
        'RescheduleRequests', back_populates='session', cascade='all, delete-orphan'
    )


class Holidays(Base):
    __tablename__ = 'holidays'

    date = Column(Text, nullable=False, unique=True)
    id = Column(Integer, primary_key=True)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class BlockedTimes(Base):
    __tablename__ = 'blocked_times'
    __table_args__ = (
        UniqueConstraint('date', 'time'),
    )

    date = Column(Text, nullable=False, index=True)
    time = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class OpenedSlots(Base):
    __tablename__ = 'opened_slots'
    __table_args__ = (
        UniqueConstraint('date', 'time'),
    )

    date = Column(Text, nullable=False, index=True)
    time = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class RescheduleRequests(Base):
    __tablename__ = 'reschedule_requests'
    __table_args__ = (
        # One pending request per session
        Index(
            'uq_reschedule_pending_session',
            'session_id',
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    session_id = Column(ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False)
    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, index=True)
    original_date = Column(Text, nullable=False)
    original_time = Column(Text, nullable=False)
    requested_date = Column(Text, nullable=False)
    requested_time = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    id = Column(Integer, primary_key=True)
    client_name = Column(Text)
    duration_minutes = Column(Integer)
    dismissed = Column(Integer, nullable=False, server_default=text('0'))
    created_at = Column(Text)
    responded_at = Column(Text)

    session = relationship('Sessions', back_populates='reschedule_requests')


class CircuitSessions(Base):
    """Saturday circuit class; id is the date key."""
    __tablename__ = 'circuit_sessions'

    id = Column(Text, primary_key=True)
    date = Column(Text, nullable=False)
    time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    max_capacity = Column(Integer, nullable=False, server_default=text('8'))
    slots = Column(Text, nullable=False, server_default=text("'[]'"))
    waitlist = Column(Text, nullable=False, server_default=text("'[]'"))
    vip_opt_outs = Column(Text, nullable=False, server_default=text("'[]'"))
    created_at = Column(Text)


class PushSubscriptions(Base):
    __tablename__ = 'push_subscriptions'

    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, index=True)
    endpoint = Column(Text, nullable=False, unique=True)
    id = Column(Integer, primary_key=True)
    auth = Column(Text)
    p256dh = Column(Text)
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    client = relationship('Clients', back_populates='push_subscriptions')


class ClientBadges(Base):
    __tablename__ = 'client_badges'
    __table_args__ = (
        UniqueConstraint('client_id', 'badge_id'),
    )

    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'), nullable=False)
    badge_id = Column(Text, nullable=False)
    earned_at = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)

    client = relationship('Clients', back_populates='badges')


class NutritionTargets(Base):
    __tablename__ = 'nutrition_targets'

    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, unique=True)
    calories = Column(Integer, nullable=False)
    protein = Column(Integer, nullable=False)
    carbs = Column(Integer, nullable=False)
    fats = Column(Integer, nullable=False)
    id = Column(Integer, primary_key=True)
    goal = Column(Text)
    updated_at = Column(Text)


class NutritionLogs(Base):
    """One day of food entries; entries are a JSON array rewritten as a whole."""
    __tablename__ = 'nutrition_logs'
    __table_args__ = (
        UniqueConstraint('client_id', 'date'),
    )

    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, index=True)
    date = Column(Text, nullable=False)  # YYYY-MM-DD
    entries = Column(Text, nullable=False, server_default=text("'[]'"))
    id = Column(Integer, primary_key=True)
    updated_at = Column(Text)


class ClientForms(Base):
    """Welcome questionnaire or PAR-Q; one row per client and form type."""
    __tablename__ = 'client_forms'
    __table_args__ = (
        UniqueConstraint('client_id', 'form_type'),
    )

    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, index=True)
    form_type = Column(Text, nullable=False)  # welcome / parq
    answers = Column(Text, nullable=False)
    completed_at = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    reviewed_at = Column(Text)

    client = relationship('Clients', back_populates='forms')
