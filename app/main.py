"""
Streamlit Frontend for the Personal Finance Tracker

One page per area of the ledger: dashboard, transactions, debts and
goals, insights, months and settings.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every form is validated before anything changes
3. Clear error messages in simple language
4. Visual feedback for all operations
5. Nothing is saved to storage without an explicit "Save" action

Insight panels always render: when the proxy is down the local
fallback answers and the panel says so.
"""

import asyncio
from datetime import date
from uuid import UUID

import streamlit as st

from finance_tracker.audit import configure_logging
from finance_tracker.config import get_settings, validate_all_settings
from finance_tracker.ledger import (
    NOT_ENOUGH_MONTHS_MESSAGE,
    budget_usage,
    compare_with_previous,
    payoff_projection,
    starter_recommendations,
    summarize_month,
)
from finance_tracker.models.finance import (
    Debt,
    ExpenseCategory,
    Goal,
    GoalType,
    IncomeType,
    month_display_name,
    month_id_for,
    next_month_id,
)
from finance_tracker.orchestrator import InsightsFlow, LedgerFlow, create_app_components


# Page configuration
st.set_page_config(
    page_title="Personal Finance Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .fallback-note {
        color: #856404;
        font-size: 0.85em;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_flows() -> tuple[LedgerFlow, InsightsFlow]:
    """Per-session flows; the ledger lives inside the LedgerFlow."""
    if "ledger_flow" not in st.session_state:
        configure_logging(get_settings().app.debug_mode)
        ledger_flow, insights_flow, _ = create_app_components(use_storage=True)
        ledger, ok, _ = run_async(ledger_flow.load())
        if not ok or not ledger.months:
            run_async(ledger_flow.add_month(month_id_for(date.today())))
        st.session_state.ledger_flow = ledger_flow
        st.session_state.insights_flow = insights_flow
    return st.session_state.ledger_flow, st.session_state.insights_flow


def show_result(ok: bool, message: str):
    if ok:
        st.success(message)
    else:
        st.error(message)


def default_entry_date(ledger_flow: LedgerFlow) -> date:
    """Today when viewing the current month, otherwise the 1st of the viewed month."""
    today = date.today()
    month_id = ledger_flow.ledger.active_month_id
    if month_id is None or month_id == month_id_for(today):
        return today
    year, month = (int(part) for part in month_id.split("-"))
    return date(year, month, 1)


def fallback_note(is_fallback: bool):
    if is_fallback:
        st.markdown(
            '<p class="fallback-note">⚠️ The AI service is unavailable. '
            "Showing general advice instead.</p>",
            unsafe_allow_html=True,
        )


def main():
    """Main application entry point."""
    ledger_flow, insights_flow = get_flows()
    ledger = ledger_flow.ledger

    st.sidebar.title("💰 Finance Tracker")
    if ledger.month_ids:
        active = ledger.active_month_id
        selected = st.sidebar.selectbox(
            "Month",
            ledger.month_ids,
            index=ledger.month_ids.index(active) if active in ledger.month_ids else 0,
            format_func=month_display_name,
        )
        if selected != active:
            run_async(ledger_flow.set_active_month(selected))
            st.rerun()
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "🧾 Transactions", "💳 Debts & Goals",
         "💡 Insights", "📅 Months", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("💾 Save all"):
        _, ok, message = run_async(ledger_flow.save())
        show_result(ok, message)

    if page == "📊 Dashboard":
        render_dashboard(ledger_flow)
    elif page == "🧾 Transactions":
        render_transactions_page(ledger_flow, insights_flow)
    elif page == "💳 Debts & Goals":
        render_debts_page(ledger_flow)
    elif page == "💡 Insights":
        render_insights_page(ledger_flow, insights_flow)
    elif page == "📅 Months":
        render_months_page(ledger_flow)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_dashboard(ledger_flow: LedgerFlow):
    ledger = ledger_flow.ledger
    month_id = ledger.active_month_id
    st.title(f"📊 {month_display_name(month_id)}")

    snapshot = ledger.snapshot()
    summary = summarize_month(snapshot, month_id)
    comparison = compare_with_previous(ledger)

    col1, col2, col3 = st.columns(3)
    has_previous = comparison.previous is not None
    col1.metric(
        "Income",
        f"${summary.total_income:,.2f}",
        f"{comparison.income_change:+,.2f}" if has_previous else None,
    )
    col2.metric(
        "Expenses",
        f"${summary.total_expenses:,.2f}",
        f"{comparison.expense_change:+,.2f}" if has_previous else None,
        delta_color="inverse",
    )
    col3.metric(
        "Savings rate",
        f"{summary.savings_rate:.1f}%",
        f"{comparison.savings_rate_change:+.1f} pts" if has_previous else None,
    )

    st.markdown("### Budgets")
    usages = budget_usage(snapshot)
    if not usages:
        st.info("No budgets set for this month yet.")
    for usage in usages:
        st.write(f"**{usage.category.value}**: ${usage.spent:,.2f} of ${usage.limit:,.2f}")
        st.progress(min(usage.percent_used, 100.0) / 100)

    if st.button("🔔 Check budget alerts"):
        _, ok, message = run_async(ledger_flow.refresh_budget_alerts())
        show_result(ok, message)

    for alert in ledger_flow.ledger.snapshot().alerts:
        if alert.severity == "error":
            st.error(alert.message)
        else:
            st.warning(alert.message)

    st.markdown("### Tips")
    recommendations = snapshot.recommendations or starter_recommendations(summary)
    for recommendation in recommendations:
        st.markdown(f"**{recommendation.type}**: {recommendation.description}")


def render_transactions_page(ledger_flow: LedgerFlow, insights_flow: InsightsFlow):
    st.title("🧾 Transactions")
    tab_expense, tab_income, tab_budget = st.tabs(["Expense", "Income", "Budget"])

    with tab_expense:
        description = st.text_input("Description", key="expense_description")
        if description and st.button("✨ Suggest category"):
            suggestion = run_async(insights_flow.categorize(description))
            st.session_state.suggested_category = suggestion.category
            fallback_note(suggestion.is_fallback)
        suggested = st.session_state.get("suggested_category")

        categories = [category.value for category in ExpenseCategory]
        with st.form("expense_form"):
            amount = st.number_input("Amount", min_value=0.0, step=1.0, format="%.2f")
            category = st.selectbox(
                "Category",
                categories,
                index=categories.index(suggested) if suggested in categories else 0,
            )
            spent_on = st.date_input("Date", value=default_entry_date(ledger_flow))
            if st.form_submit_button("Add expense"):
                _, ok, message = run_async(ledger_flow.record_expense({
                    "amount": amount,
                    "category": category,
                    "date": spent_on,
                    "description": description or None,
                }))
                show_result(ok, message)

    with tab_income:
        with st.form("income_form"):
            source = st.text_input("Source")
            income_type = st.selectbox("Type", [t.value for t in IncomeType])
            amount = st.number_input("Amount", min_value=0.0, step=1.0, format="%.2f", key="income_amount")
            received_on = st.date_input("Date", value=default_entry_date(ledger_flow), key="income_date")
            recurring = st.checkbox("Recurring")
            if st.form_submit_button("Add income"):
                _, ok, message = run_async(ledger_flow.record_income({
                    "source": source,
                    "type": income_type,
                    "amount": amount,
                    "date": received_on,
                    "recurring": recurring,
                }))
                show_result(ok, message)

    with tab_budget:
        with st.form("budget_form"):
            category = st.selectbox("Category", [c.value for c in ExpenseCategory], key="budget_category")
            limit = st.number_input("Monthly limit", min_value=0.0, step=10.0, format="%.2f")
            if st.form_submit_button("Set budget"):
                _, ok, message = run_async(ledger_flow.set_budget({
                    "category": category,
                    "limit": limit,
                }))
                show_result(ok, message)

    snapshot = ledger_flow.ledger.snapshot()
    st.markdown("### This month")
    rows = [
        {"Date": e.date, "Category": e.category.value, "Amount": f"${e.amount:,.2f}",
         "Description": e.description or ""}
        for e in sorted(snapshot.expenses, key=lambda e: e.date, reverse=True)
    ]
    if rows:
        st.dataframe(rows, use_container_width=True)
    else:
        st.info("No expenses recorded for this month.")


def render_debts_page(ledger_flow: LedgerFlow):
    st.title("💳 Debts & Goals")
    snapshot = ledger_flow.ledger.snapshot()
    month_id = ledger_flow.ledger.active_month_id

    st.markdown("### Debts")
    for debt in snapshot.debts:
        with st.expander(f"{debt.name}: ${debt.balance:,.2f} left"):
            st.progress(min(debt.percent_paid, 100.0) / 100)
            projection = payoff_projection(debt, month_id)
            if projection.months_remaining:
                st.caption(
                    f"{projection.percent_paid}% paid. Debt-free by "
                    f"{month_display_name(projection.payoff_month)} "
                    f"({projection.time_remaining.lower()})"
                )
            else:
                st.caption(f"{projection.percent_paid}% paid. {projection.time_remaining}")
            if projection.history:
                st.line_chart(
                    [
                        {
                            "Month": f"{p.month_id} (projected)" if p.projected else p.month_id,
                            "Balance": float(p.balance),
                        }
                        for p in projection.history
                    ],
                    x="Month",
                    y="Balance",
                )
            if debt.is_paid_off:
                st.success("Paid off 🎉")
                continue
            with st.form(f"pay_{debt.id}"):
                amount = st.number_input(
                    "Payment amount",
                    min_value=0.0,
                    value=float(debt.minimum_payment),
                    step=10.0,
                    format="%.2f",
                )
                paid_on = st.date_input("Payment date", value=default_entry_date(ledger_flow))
                if st.form_submit_button("Record payment"):
                    _, ok, message = run_async(ledger_flow.pay_debt(debt.id, amount, paid_on))
                    show_result(ok, message)

    with st.expander("➕ Add a debt"):
        with st.form("debt_form"):
            name = st.text_input("Name")
            principal = st.number_input("Amount owed", min_value=0.0, step=100.0, format="%.2f")
            rate = st.number_input("Interest rate (%)", min_value=0.0, max_value=100.0, step=0.1)
            minimum = st.number_input("Minimum payment", min_value=0.0, step=10.0, format="%.2f")
            if st.form_submit_button("Add debt"):
                try:
                    debt = Debt(
                        name=name,
                        original_principal=principal,
                        interest_rate=rate,
                        minimum_payment=minimum,
                    )
                except ValueError as e:
                    st.error(f"Please check the debt details: {e}")
                else:
                    _, ok, message = run_async(ledger_flow.add_debt(debt))
                    show_result(ok, message)

    st.markdown("### Goals")
    for goal in snapshot.goals:
        with st.expander(f"{goal.name}: ${goal.current_amount:,.2f} of ${goal.target_amount:,.2f}"):
            st.progress(float(min(goal.current_amount / goal.target_amount, 1)))
            if goal.completed:
                st.success("Completed 🎉")
                continue
            if goal.type == GoalType.DEBT_PAYOFF:
                st.caption("Progress comes from payments on the linked debt.")
                continue
            with st.form(f"contribute_{goal.id}"):
                amount = st.number_input("Contribution", min_value=0.0, step=10.0, format="%.2f")
                if st.form_submit_button("Add contribution"):
                    _, ok, message = run_async(
                        ledger_flow.contribute_to_goal(goal.id, amount, default_entry_date(ledger_flow))
                    )
                    show_result(ok, message)

    with st.expander("➕ Add a goal"):
        debts = {debt.name: debt.id for debt in snapshot.debts}
        with st.form("goal_form"):
            name = st.text_input("Goal name")
            goal_type = st.selectbox("Type", [t.value for t in GoalType])
            target = st.number_input("Target amount", min_value=0.0, step=100.0, format="%.2f")
            target_date = st.date_input("Target date", value=None)
            linked = st.selectbox("Linked debt (for debt payoff goals)", ["None"] + list(debts))
            if st.form_submit_button("Add goal"):
                try:
                    goal = Goal(
                        name=name,
                        type=goal_type,
                        target_amount=target,
                        target_date=target_date,
                        associated_debt_id=debts.get(linked),
                    )
                except ValueError as e:
                    st.error(f"Please check the goal details: {e}")
                else:
                    _, ok, message = run_async(ledger_flow.add_goal(goal))
                    show_result(ok, message)


def render_insights_page(ledger_flow: LedgerFlow, insights_flow: InsightsFlow):
    st.title("💡 Insights")
    ledger = ledger_flow.ledger

    st.markdown("### Financial health")
    health = run_async(insights_flow.health(ledger))
    st.markdown(f"**{health.score}/100 · {health.label}**")
    st.write(health.feedback)
    fallback_note(health.is_fallback)

    st.markdown("### Recommendations")
    if st.button("Generate recommendations"):
        insights = run_async(insights_flow.month_insights(ledger))
        for insight in insights:
            st.markdown(f"**{insight.type}**: {insight.description}")
            if insight.impact:
                st.caption(insight.impact)
        fallback_note(any(insight.is_fallback for insight in insights))

    st.markdown("### Goal priorities")
    goals = {goal.id: goal for goal in ledger.snapshot().goals}
    if goals and st.button("Prioritize my goals"):
        for priority in run_async(insights_flow.prioritize_goals(ledger)):
            goal = goals.get(priority.goal_id)
            if goal:
                st.markdown(f"**{priority.priority_score}/10 · {goal.name}**: {priority.reasoning}")

    if goals:
        chosen = st.selectbox(
            "Advice for goal",
            list(goals),
            format_func=lambda goal_id: goals[goal_id].name,
        )
        if st.button("Get goal advice"):
            result = run_async(insights_flow.goal_recommendations(ledger, UUID(str(chosen))))
            if result:
                for recommendation in result.recommendations:
                    st.markdown(f"- **{recommendation.description}** ({recommendation.potential_impact})")
                    for action in recommendation.required_actions:
                        st.markdown(f"    - {action}")
                fallback_note(result.is_fallback)

    st.markdown("### Spending optimization")
    target = st.slider("Target savings rate (%)", 0, 50, int(get_settings().app.target_savings_rate))
    if st.button("Find savings"):
        optimization = run_async(insights_flow.optimize_spending(ledger, target_savings_rate=target))
        if optimization is None:
            st.info("Add some expenses first.")
        else:
            for area in optimization.optimization_areas:
                st.markdown(f"**{area.category}**: cut ${area.recommended_reduction:,.2f}")
                for suggestion in area.specific_suggestions:
                    st.markdown(f"- {suggestion}")
            impact = optimization.projected_impact
            st.success(
                f"New savings rate {impact.new_savings_rate:.1f}% "
                f"(+${impact.monthly_increase:,.2f}/month, +${impact.yearly_increase:,.2f}/year)"
            )
            fallback_note(optimization.is_fallback)


def render_months_page(ledger_flow: LedgerFlow):
    st.title("📅 Months")
    ledger = ledger_flow.ledger

    for month_id in ledger.month_ids:
        marker = " (active)" if month_id == ledger.active_month_id else ""
        st.write(f"- {month_display_name(month_id)}{marker}")

    suggested = next_month_id(ledger.month_ids[-1]) if ledger.month_ids else month_id_for(date.today())
    new_month = st.text_input("Add month (YYYY-MM)", value=suggested)
    if st.button("Add month"):
        _, ok, message = run_async(ledger_flow.add_month(new_month))
        show_result(ok, message)

    st.markdown("---")
    st.markdown("### Carry debts and goals forward")
    if len(ledger.month_ids) < 2:
        st.info(NOT_ENOUGH_MONTHS_MESSAGE)
    if st.button("Update all months"):
        _, ok, message = run_async(ledger_flow.propagate())
        show_result(ok, message)

    st.markdown("---")
    if st.button("Load sample data"):
        _, ok, message = run_async(ledger_flow.load_sample_data(ledger.month_ids))
        show_result(ok, message)


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Gemini (AI insights)", "gemini"),
        ("Google Sheets (Storage)", "google_sheets"),
        ("Persistence API", "persistence"),
        ("Insights proxy", "insights"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your settings. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
