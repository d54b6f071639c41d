"""Saved scenarios for the side-by-side comparison table.

Each saved scenario keeps the parameters it was simulated with, the headline
totals of its result and the yearly balance series the chart draws. Money is
stored as decimal strings so a scenario reads back exactly as it was saved.
SQLite is the default backend; any SQLAlchemy URL works.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Sequence
from uuid import uuid4

from sqlalchemy import Column, Integer, String, Text, create_engine, delete, select
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from mortgage_sim.data_models import QuotaTarget, SimulationParameters, SimulationResult, Strategy
from mortgage_sim.utils import params_to_dict

Base = declarative_base()


@dataclass(frozen=True)
class SavedScenario:
    """A scenario as the comparison table shows it.

    Attributes
    ----------
    id : str
        Public identifier used by the remove form.
    name : str
        Label chosen by the user.
    params : SimulationParameters
        Parameters the scenario was simulated with.
    total_interest, total_paid : Decimal
        Totals of the simulated result.
    total_months : int
        Months until payoff (or the ceiling).
    balances : list of float
        Yearly balance series as plotted.
    """

    id: str
    name: str
    params: SimulationParameters
    total_interest: Decimal
    total_paid: Decimal
    total_months: int
    balances: List[float]

    @property
    def total_years(self) -> Decimal:
        return Decimal(self.total_months) / Decimal(12)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "params": params_to_dict(self.params),
            "total_interest": float(self.total_interest),
            "total_paid": float(self.total_paid),
            "total_months": self.total_months,
            "total_years": float(self.total_years),
            "balances": self.balances,
        }


class SavedScenarioRow(Base):
    __tablename__ = "saved_scenarios"

    # insertion order; timestamps can tie on quick successive saves
    seq = Column(Integer, primary_key=True, autoincrement=True)
    public_id = Column(String(32), unique=True, nullable=False)
    user_token = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    principal = Column(String(64), nullable=False)
    annual_rate_percent = Column(String(64), nullable=False)
    monthly_payment = Column(String(64), nullable=False)
    amortization_amount = Column(String(64), nullable=False)
    strategy = Column(String(16), nullable=False)
    quota_target = Column(String(16), nullable=False)
    max_months = Column(Integer, nullable=False)
    total_interest = Column(String(64), nullable=False)
    total_paid = Column(String(64), nullable=False)
    total_months = Column(Integer, nullable=False)
    balances_json = Column(Text, nullable=False)

    def to_scenario(self) -> SavedScenario:
        params = SimulationParameters(
            principal=Decimal(self.principal),
            annual_rate_percent=Decimal(self.annual_rate_percent),
            monthly_payment=Decimal(self.monthly_payment),
            amortization_amount=Decimal(self.amortization_amount),
            strategy=Strategy(self.strategy),
            quota_target=QuotaTarget(self.quota_target),
            max_months=self.max_months,
        )
        return SavedScenario(
            id=self.public_id,
            name=self.name,
            params=params,
            total_interest=Decimal(self.total_interest),
            total_paid=Decimal(self.total_paid),
            total_months=self.total_months,
            balances=json.loads(self.balances_json),
        )


class ComparisonStore:
    """Per-user saved scenarios, newest ``max_per_user`` kept."""

    def __init__(self, url: str, *, max_per_user: int = 10) -> None:
        engine_kwargs: Dict[str, Any] = {}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every session sees an empty database
            engine_kwargs.update(connect_args={"check_same_thread": False}, poolclass=StaticPool)
        self._engine = create_engine(url, **engine_kwargs)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False)
        self._max_per_user = max_per_user

    def list_scenarios(self, user_token: str) -> List[SavedScenario]:
        if not user_token:
            return []
        with self._session_factory() as session:
            rows = session.execute(
                select(SavedScenarioRow)
                .where(SavedScenarioRow.user_token == user_token)
                .order_by(SavedScenarioRow.seq)
            ).scalars()
            return [row.to_scenario() for row in rows]

    def add_scenario(
        self,
        user_token: str,
        name: str,
        params: SimulationParameters,
        result: SimulationResult,
        balances: Sequence[float],
    ) -> SavedScenario | None:
        """Save ``result`` under ``name`` and drop the user's oldest scenarios past the cap."""
        if not user_token:
            return None
        row = SavedScenarioRow(
            public_id=uuid4().hex,
            user_token=user_token,
            name=name,
            principal=str(params.principal),
            annual_rate_percent=str(params.annual_rate_percent),
            monthly_payment=str(params.monthly_payment),
            amortization_amount=str(params.amortization_amount),
            strategy=params.strategy.value,
            quota_target=params.quota_target.value,
            max_months=params.max_months,
            total_interest=str(result.total_interest),
            total_paid=str(result.total_paid),
            total_months=result.total_months,
            balances_json=json.dumps(list(balances)),
        )
        with self._session_factory() as session:
            session.add(row)
            session.flush()
            if self._max_per_user > 0:
                stale = session.execute(
                    select(SavedScenarioRow.seq)
                    .where(SavedScenarioRow.user_token == user_token)
                    .order_by(SavedScenarioRow.seq.desc())
                    .offset(self._max_per_user)
                ).scalars().all()
                if stale:
                    session.execute(delete(SavedScenarioRow).where(SavedScenarioRow.seq.in_(stale)))
            session.commit()
        return row.to_scenario()

    def remove_scenario(self, user_token: str, scenario_id: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            session.execute(
                delete(SavedScenarioRow).where(
                    SavedScenarioRow.user_token == user_token,
                    SavedScenarioRow.public_id == scenario_id,
                )
            )
            session.commit()

    def clear_scenarios(self, user_token: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            session.execute(delete(SavedScenarioRow).where(SavedScenarioRow.user_token == user_token))
            session.commit()


def create_store_from_env(url: str | None) -> ComparisonStore:
    return ComparisonStore(url or "sqlite:///comparison_data.sqlite3")
