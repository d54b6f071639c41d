import json
import logging
import os
from decimal import Decimal
from uuid import uuid4

from flask import Flask, render_template, request, session, redirect, url_for

from mortgage_sim.compare import baseline_for, compare, compare_strategies
from mortgage_sim.data_models import DEFAULT_MAX_MONTHS, ComparisonResult, QuotaTarget, SimulationParameters, Strategy
from mortgage_sim.errors import InvalidParameters
from mortgage_sim.formatter import STRATEGY_LABELS, describe_best_strategy, non_convergence_message
from mortgage_sim.utils import aligned_yearly_balances, comparison_to_dict, to_decimal
from mortgage_sim_web.comparison_store import ComparisonStore, create_store_from_env

logger = logging.getLogger(__name__)

DEFAULT_FORM = {
    "principal": "95018",
    "rate": "2.55",
    "monthly_payment": "407.43",
    "amortization": "0",
    "strategy": Strategy.REDUCE_TERM.value,
    "quota_target": QuotaTarget.IMPLIED.value,
}
BEST_STRATEGY_DEFAULT_AMOUNT = "1000"


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _field(form, name: str) -> str:
    return form.get(name, DEFAULT_FORM[name]).strip()


def _parse_number(form, name: str) -> Decimal:
    try:
        return to_decimal(_field(form, name))
    except ValueError:
        raise InvalidParameters([f"{name} must be a number"])


def _form_to_params(form, max_months: int) -> SimulationParameters:
    errors = []
    values = {}
    for name in ("principal", "rate", "monthly_payment", "amortization"):
        try:
            values[name] = _parse_number(form, name)
        except InvalidParameters as exc:
            errors.extend(exc.errors)
    try:
        strategy = Strategy(_field(form, "strategy"))
        quota_target = QuotaTarget(_field(form, "quota_target"))
    except ValueError as exc:
        errors.append(str(exc))
    if errors:
        raise InvalidParameters(errors)
    return SimulationParameters(
        principal=values["principal"],
        annual_rate_percent=values["rate"],
        monthly_payment=values["monthly_payment"],
        amortization_amount=values["amortization"],
        strategy=strategy,
        quota_target=quota_target,
        max_months=max_months,
    )


def _analysis_view(comparison: ComparisonResult) -> dict:
    view = comparison_to_dict(comparison)
    view["chart"] = aligned_yearly_balances(comparison.base, comparison.scenario)
    view["warning"] = None
    if not comparison.base.converged:
        view["warning"] = non_convergence_message(comparison.base)
    elif not comparison.scenario.converged:
        view["warning"] = non_convergence_message(comparison.scenario)
    return view


def _run_best_strategy(form, params: SimulationParameters) -> tuple:
    """Pick the cheaper strategy and return the form values and message to show."""
    if params.amortization_amount == 0:
        params = params.with_changes(amortization_amount=Decimal(BEST_STRATEGY_DEFAULT_AMOUNT))
    result = compare_strategies(params)
    params = params.with_changes(strategy=result.best)
    form_values = dict(form)
    form_values["amortization"] = str(params.amortization_amount)
    form_values["strategy"] = result.best.value
    return params, form_values, describe_best_strategy(result)


def create_app(store: ComparisonStore = None) -> Flask:
    app = Flask(__name__)
    app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
    app.config["MAX_MONTHS"] = int(os.environ.get("MORTGAGE_SIM_MAX_MONTHS", DEFAULT_MAX_MONTHS))
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    comparison_store = store if store is not None else create_store_from_env(os.environ.get("COMPARISON_DATABASE_URL"))
    app.extensions["comparison_store"] = comparison_store

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.route("/", methods=["GET", "POST"])
    def index():
        form_values = dict(DEFAULT_FORM)
        analysis = None
        error = None
        message = None
        action = "run"

        user_token = _ensure_user_token()

        if request.method == "POST":
            action = request.form.get("action", "run")
            form_values.update({k: v for k, v in request.form.items() if k in DEFAULT_FORM})
            try:
                params = _form_to_params(request.form, app.config["MAX_MONTHS"])
                if action == "best_strategy":
                    params, form_values, message = _run_best_strategy(form_values, params)
                comparison = compare(baseline_for(params), params)
                analysis = _analysis_view(comparison)
                if action == "add_to_comparison":
                    name = request.form.get("scenario_name", "").strip() or "Scenario"
                    comparison_store.add_scenario(
                        user_token,
                        name,
                        params,
                        comparison.scenario,
                        analysis["chart"]["scenario"],
                    )
            except InvalidParameters as exc:
                error = "Invalid input: " + "; ".join(exc.errors)
            except Exception:
                logger.exception("Simulation failed")
                error = "The simulation failed unexpectedly."

        comparison_scenarios = comparison_store.list_scenarios(user_token)
        return render_template(
            "index.html",
            form=form_values,
            analysis=analysis,
            error=error,
            message=message,
            strategy_labels={s.value: label for s, label in STRATEGY_LABELS.items()},
            quota_targets=[t.value for t in QuotaTarget],
            asset_version=app.config["ASSET_VERSION"],
            comparison_scenarios=comparison_scenarios,
            comparison_payload=[scenario.to_dict() for scenario in comparison_scenarios],
            chart_payload=json.dumps(analysis["chart"]) if analysis else "null",
            last_action=action,
        )

    @app.post("/comparison/remove")
    def remove_comparison():
        scenario_id = request.form.get("scenario_id")
        user_token = session.get("user_token")
        comparison_store.remove_scenario(user_token, scenario_id)
        return redirect(url_for("index"))

    @app.post("/comparison/clear")
    def clear_comparisons():
        user_token = session.get("user_token")
        comparison_store.clear_scenarios(user_token)
        return redirect(url_for("index"))

    return app


if __name__ == "__main__":
    logging.basicConfig(level=os.environ.get("MORTGAGE_SIM_LOG_LEVEL", "WARNING").upper())
    print("Starting mortgage simulator web app...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
