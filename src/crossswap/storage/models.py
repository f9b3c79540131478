"""SQLAlchemy models for users and their encrypted wallets."""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class User(Base):
    """Bot user linked to a Telegram account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    telegram_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    wallets: Mapped[list["StoredWallet"]] = relationship(
        back_populates="user", lazy="selectin", order_by="StoredWallet.id"
    )


class StoredWallet(Base):
    """A wallet at rest.

    Secrets are only ever stored as password-encrypted envelopes
    (see crossswap.crypto). Address, public key and chain family are
    plaintext so wallets can be listed without the password.
    """

    __tablename__ = "wallets"
    __table_args__ = (Index("ix_wallets_user_address", "user_id", "address", unique=True),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    address: Mapped[str] = mapped_column(String(100), nullable=False)
    chain_family: Mapped[str] = mapped_column(String(20), nullable=False)  # evm, bitcoin, starknet
    public_key: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    encrypted_key: Mapped[str] = mapped_column(Text, nullable=False)
    encrypted_mnemonic: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    contract_deployed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="wallets")
