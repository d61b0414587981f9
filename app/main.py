"""
Streamlit Frontend for the Budget Engine

The monthly budget dashboard: pick a month, see what is allocated and
spent per category, and how much income is still left to allocate once
fixed expenses, debt payments and goal contributions are covered.

DESIGN PRINCIPLES:
1. The controller owns all state; the UI only renders it
2. Every action goes through the controller and ends in a reload
3. Errors show as a banner; the dashboard never goes blank
4. Icons are resolved here, the engine only knows their keys
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from budget_engine.config import get_settings, validate_all_settings
from budget_engine.controller import BudgetPeriodController, create_app_components
from budget_engine.models.budget import IconKey
from budget_engine.models.obligations import (
    Debt,
    FinancialGoal,
    Frequency,
    RecurringKind,
    RecurringTransaction,
)
from budget_engine.services.obligations import (
    DebtTracker,
    GoalTracker,
    RecurringObligations,
)


# Page configuration
st.set_page_config(
    page_title="Monthly Budget",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


ICON_EMOJI = {
    IconKey.HOME: "🏠",
    IconKey.SHOPPING_CART: "🛒",
    IconKey.CAR: "🚗",
    IconKey.UTENSILS: "🍽️",
    IconKey.COFFEE: "☕",
    IconKey.BRIEFCASE: "💼",
    IconKey.FILM: "🎬",
    IconKey.HEART: "❤️",
    IconKey.SHOPPING_BAG: "🛍️",
    IconKey.MORE_HORIZONTAL: "⋯",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    recurring = RecurringObligations()
    debts = DebtTracker()
    goals = GoalTracker()
    try:
        controller, _ = create_app_components(
            use_storage=True, recurring=recurring, debts=debts, goals=goals,
        )
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        controller, _ = create_app_components(
            use_storage=False, recurring=recurring, debts=debts, goals=goals,
        )
    run_async(controller.refresh_data())
    return controller, recurring, debts, goals


def money(value) -> str:
    symbol = get_settings().app.currency_symbol
    return f"{symbol}{Decimal(value):,.2f}"


def main():
    """Main application entry point."""
    controller, recurring, debts, goals = get_components()

    # Sidebar navigation
    st.sidebar.title("💰 Monthly Budget")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📅 Budget", "🔁 Recurring, Debts & Goals", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How it works:**
        1. Pick a month
        2. Set an allocation for each category
        3. Record spending as it happens

        A month you haven't budgeted yet starts with
        the allocations of the month you came from.
        """
    )

    # Route to appropriate page
    if page == "📅 Budget":
        render_budget_page(controller)
    elif page == "🔁 Recurring, Debts & Goals":
        render_obligations_page(controller, recurring, debts, goals)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_budget_page(controller: BudgetPeriodController):
    """Render the monthly budget dashboard."""
    # Month navigation
    col_prev, col_title, col_next = st.columns([1, 3, 1])
    with col_prev:
        if st.button("◀ Previous"):
            run_async(controller.prev_month())
            st.rerun()
    with col_title:
        st.title(f"📅 {controller.active_period}")
    with col_next:
        if st.button("Next ▶"):
            run_async(controller.next_month())
            st.rerun()

    with st.expander("Jump to month"):
        label = st.text_input("Month", placeholder="e.g. March 2026")
        if st.button("Go") and label:
            if run_async(controller.set_active_period(label)):
                st.rerun()
            else:
                st.warning(f"Couldn't understand '{label}'. Try 'March 2026'.")

    if controller.error:
        st.error(f"⚠️ {controller.error}")

    state = controller.state

    # Headline figures
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Monthly Income", money(state.monthly_income))
    col2.metric("Allocated", money(state.total_allocated))
    col3.metric("Spent", money(state.total_spent))
    col4.metric("Left to Allocate", money(state.left_to_allocate))

    col5, col6, col7, col8 = st.columns(4)
    col5.metric("Fixed Expenses", money(state.fixed_expenses))
    col6.metric("Debt Payments", money(state.total_debt_payments))
    col7.metric("Goal Contributions", money(state.total_goal_contributions))
    col8.metric("Remaining Budget", money(state.remaining_budget))

    if state.left_to_allocate < 0:
        st.warning("You've committed more than your income this month.")

    st.markdown("---")
    st.markdown("### Categories")

    if not state.categories:
        st.info("No categories yet. Add one below.")

    for category in state.categories:
        icon = ICON_EMOJI.get(category.icon, "🛒")
        with st.container():
            c1, c2, c3 = st.columns([3, 2, 2])
            with c1:
                st.markdown(f"**{icon} {category.name}**")
                progress = min(float(category.percent_used) / 100, 1.0)
                st.progress(progress)
                st.caption(
                    f"{money(category.spent)} of {money(category.allocated)} "
                    f"({money(category.remaining)} left)"
                )
            with c2:
                with st.form(f"allocate_{category.id}"):
                    amount = st.number_input(
                        "Allocation",
                        min_value=0.0,
                        value=float(category.allocated),
                        step=10.0,
                    )
                    if st.form_submit_button("Set"):
                        run_async(controller.set_allocation(category.id, Decimal(str(amount))))
                        st.rerun()
            with c3:
                with st.form(f"spend_{category.id}"):
                    spend = st.number_input("Spend", min_value=0.0, step=1.0)
                    description = st.text_input("Description", value="")
                    if st.form_submit_button("Add") and spend:
                        run_async(controller.add_transaction(
                            category.id, Decimal(str(spend)), description or None,
                        ))
                        st.rerun()

    st.markdown("---")
    render_category_management(controller)


def render_category_management(controller: BudgetPeriodController):
    """Add, rename and delete categories."""
    st.markdown("### Manage Categories")
    icon_options = list(IconKey)

    with st.expander("➕ Add category"):
        with st.form("add_category"):
            name = st.text_input("Name")
            icon = st.selectbox(
                "Icon",
                options=icon_options,
                format_func=lambda k: f"{ICON_EMOJI[k]} {k.value}",
            )
            color = st.text_input("Color", value="text-gray-600 bg-gray-100")
            allocated = st.number_input("Starting allocation", min_value=0.0, step=10.0)
            if st.form_submit_button("Add Category") and name:
                run_async(controller.add_category(
                    name, icon.value, color, Decimal(str(allocated)),
                ))
                st.rerun()

    categories = controller.budget_categories
    if not categories:
        return

    with st.expander("✏️ Edit or delete category"):
        selected = st.selectbox(
            "Category",
            options=categories,
            format_func=lambda c: c.name,
        )
        with st.form("edit_category"):
            new_name = st.text_input("Name", value=selected.name)
            new_icon = st.selectbox(
                "Icon",
                options=icon_options,
                index=icon_options.index(selected.icon),
                format_func=lambda k: f"{ICON_EMOJI[k]} {k.value}",
            )
            new_color = st.text_input("Color", value=selected.color)
            if st.form_submit_button("Save Changes"):
                run_async(controller.update_category(
                    selected.id,
                    name=new_name,
                    icon=new_icon.value,
                    color=new_color,
                ))
                st.rerun()

        confirm = st.checkbox(f"Yes, delete '{selected.name}' and all its monthly entries")
        if st.button("🗑️ Delete Category", disabled=not confirm):
            run_async(controller.delete_category(selected.id))
            st.rerun()


def render_obligations_page(
    controller: BudgetPeriodController,
    recurring: RecurringObligations,
    debts: DebtTracker,
    goals: GoalTracker,
):
    """Maintain the in-process recurring, debt and goal sources."""
    st.title("🔁 Recurring, Debts & Goals")
    st.markdown("These feed the income, fixed expense, debt and goal figures on the budget page.")

    tab_recurring, tab_debts, tab_goals = st.tabs(["Recurring", "Debts", "Goals"])

    with tab_recurring:
        for transaction in recurring.transactions:
            st.markdown(
                f"- **{transaction.name}**: {money(transaction.amount)} "
                f"{transaction.frequency.value}, next {transaction.next_date.isoformat()}"
            )
        with st.form("add_recurring"):
            name = st.text_input("Name")
            amount = st.number_input("Amount (negative for outflows)", step=10.0)
            frequency = st.selectbox(
                "Frequency",
                options=list(Frequency),
                index=list(Frequency).index(Frequency.MONTHLY),
                format_func=lambda f: f.value.replace("-", " ").title(),
            )
            kind = st.selectbox(
                "Kind",
                options=list(RecurringKind),
                format_func=lambda k: k.value.replace("_", " ").title(),
            )
            next_date = st.date_input("Next date", value=date.today())
            if st.form_submit_button("Add Recurring") and name:
                recurring.add(RecurringTransaction(
                    name=name,
                    amount=Decimal(str(amount)),
                    frequency=frequency,
                    kind=kind,
                    next_date=next_date,
                ))
                run_async(controller.refresh_signals())
                st.rerun()

    with tab_debts:
        for debt in debts.debts:
            st.markdown(f"- **{debt.name}**: minimum {money(debt.minimum_payment or 0)}")
        with st.form("add_debt"):
            name = st.text_input("Name")
            minimum = st.number_input("Minimum payment", min_value=0.0, step=10.0)
            if st.form_submit_button("Add Debt") and name:
                debts.add(Debt(name=name, minimum_payment=Decimal(str(minimum))))
                run_async(controller.refresh_signals())
                st.rerun()

    with tab_goals:
        for goal in goals.goals:
            st.markdown(
                f"- **{goal.name}**: {money(goal.monthly_contribution or 0)} per month"
            )
        with st.form("add_goal"):
            name = st.text_input("Name")
            contribution = st.number_input("Monthly contribution", min_value=0.0, step=10.0)
            if st.form_submit_button("Add Goal") and name:
                goals.add(FinancialGoal(
                    name=name,
                    monthly_contribution=Decimal(str(contribution)),
                ))
                run_async(controller.refresh_signals())
                st.rerun()


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Budget Engine", "budget"),
        ("Application", "app"),
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
        "Set `BUDGET_STORAGE_BACKEND=google_sheets` and the `GOOGLE_SHEETS_*` "
        "variables in a `.env` file to keep your budget in Google Sheets. "
        "Without them the budget lives in memory for this session."
    )


if __name__ == "__main__":
    main()
