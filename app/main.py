"""
Streamlit Frontend for Household Finance

A thin shell over the orchestrator: every screen is chosen from
``orchestrator.view`` and every button calls one orchestrator intent.
Nothing here talks to the store directly.

DESIGN PRINCIPLES:
1. Render from state, never from local flags
2. Destructive actions ask first
3. Errors from the orchestrator are shown, never hidden
4. Tabs a role cannot see render nothing
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from household_finance.gateway import DELETE_CONFIRMATION
from household_finance.models.expense import ExpenseCategory, ExpenseStatus, FilterState, NewExpense
from household_finance.models.view import Screen, Tab
from household_finance.orchestrator import HouseholdOrchestrator, create_app_components, create_storage
from household_finance.queries import ExpenseQueryExecutor
from household_finance.routing import renderable_tab, visible_tabs
from household_finance.services.storage import DuplicateIdentityError, StorageError


st.set_page_config(
    page_title="Finanças da Família",
    page_icon="💰",
    layout="wide",
)

TAB_LABELS = {
    Tab.DASHBOARD: "📊 Dashboard",
    Tab.EXPENSES: "📋 Lançamentos",
    Tab.ADVANCED_HISTORY: "🔎 Histórico Avançado",
    Tab.REPORTS: "📈 Relatórios",
    Tab.NEW: "➕ Novo Lançamento",
    Tab.PROFILE: "👤 Perfil",
    Tab.SUBSCRIPTION: "⭐ Assinatura",
    Tab.ADMIN: "🏠 Administração",
    Tab.SYSTEM_ADMIN: "🛠️ Sistema",
}

DELETE_ALL_CONFIRMATION = "Tem certeza que deseja excluir TODOS os lançamentos?"

STATUS_LABELS = {
    ExpenseStatus.PAID: "Pago",
    ExpenseStatus.PENDING: "Pendente",
    ExpenseStatus.CANCELLED: "Cancelado",
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
def get_storage():
    """Store and audit storage, shared by every visitor of this server."""
    return create_storage()


def get_components():
    """This visitor's orchestrator: session, view and notification are per browser session."""
    if "components" not in st.session_state:
        orchestrator, checkout = create_app_components(storage=get_storage())
        run_async(orchestrator.initialize())
        st.session_state.components = (orchestrator, checkout)
    return st.session_state.components


def brl(value: Decimal) -> str:
    return f"R$ {value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


def main():
    """Main application entry point."""
    orchestrator, checkout = get_components()
    view = orchestrator.view

    if view.screen == Screen.LANDING:
        render_landing(orchestrator)
    elif view.screen == Screen.AUTH:
        render_auth(orchestrator)
    elif view.screen == Screen.CHECKOUT:
        render_checkout(orchestrator, checkout)
    else:
        render_authenticated(orchestrator)


def render_landing(orchestrator: HouseholdOrchestrator):
    st.title("💰 Finanças da Família")
    st.markdown(
        "Controle os gastos da casa em um só lugar: lançamentos, orçamentos "
        "por categoria e relatórios para toda a família."
    )
    if st.button("Entrar", type="primary"):
        orchestrator.go_to_login()
        st.rerun()


def render_auth(orchestrator: HouseholdOrchestrator):
    st.title("🔐 Acesso")
    login_tab, register_tab = st.tabs(["Entrar", "Criar conta"])

    with login_tab:
        identifier = st.text_input("E-mail ou CPF")
        password = st.text_input("Senha", type="password")
        as_admin = st.checkbox("Entrar como administrador")
        if st.button("Entrar", type="primary", key="login"):
            with st.spinner("Verificando..."):
                ok = run_async(orchestrator.login(identifier, password, as_admin))
            if ok:
                st.rerun()
            st.error("Credenciais inválidas.")

    with register_tab:
        render_registration_form(orchestrator, key="self_register")

    if st.button("← Voltar"):
        orchestrator.back_to_landing()
        st.rerun()


def render_registration_form(orchestrator: HouseholdOrchestrator, key: str):
    with st.form(key):
        name = st.text_input("Nome")
        email = st.text_input("E-mail")
        cpf = st.text_input("CPF")
        password = st.text_input("Senha", type="password")
        submitted = st.form_submit_button("Cadastrar")

    if submitted:
        try:
            with st.spinner("Cadastrando..."):
                run_async(orchestrator.register(name, email, cpf, password))
            st.rerun()
        except DuplicateIdentityError as e:
            st.error(f"Cadastro recusado: {e}")
        except (StorageError, ValueError) as e:
            st.error(f"Não foi possível cadastrar: {e}")


def render_checkout(orchestrator: HouseholdOrchestrator, checkout):
    st.title("⭐ Assinatura Premium")
    st.markdown(f"Assinante: **{orchestrator.current_user.name}**")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Confirmar pagamento", type="primary"):
            try:
                run_async(orchestrator.run_checkout(checkout))
            except StorageError as e:
                st.error(f"Pagamento não concluído: {e}")
                st.stop()
            st.rerun()
    with col2:
        if st.button("Cancelar"):
            run_async(orchestrator.cancel_checkout())
            st.rerun()


def render_authenticated(orchestrator: HouseholdOrchestrator):
    user = orchestrator.current_user

    st.sidebar.title("💰 Finanças da Família")
    st.sidebar.markdown(f"**{user.name}** · {user.role.value} · {user.plan.value}")
    st.sidebar.markdown("---")

    tabs = visible_tabs(user)
    active = orchestrator.view.active_tab
    selected = st.sidebar.radio(
        "Navegar para:",
        tabs,
        index=tabs.index(active) if active in tabs else 0,
        format_func=lambda t: TAB_LABELS[t],
    )
    if selected != active:
        orchestrator.select_tab(selected)
        st.rerun()

    if st.sidebar.button("Sair"):
        run_async(orchestrator.logout())
        st.rerun()

    if orchestrator.notification:
        st.success(orchestrator.notification)

    queries = ExpenseQueryExecutor(orchestrator.expense_list, orchestrator.users, orchestrator.budgets)

    tab = renderable_tab(orchestrator.view, user)
    if tab == Tab.DASHBOARD:
        render_dashboard(queries)
    elif tab == Tab.EXPENSES:
        render_expenses(orchestrator, queries)
    elif tab == Tab.ADVANCED_HISTORY:
        render_advanced_history(orchestrator, queries)
    elif tab == Tab.REPORTS:
        render_reports(orchestrator, queries)
    elif tab == Tab.NEW:
        render_new_expense(orchestrator)
    elif tab == Tab.PROFILE:
        render_profile(orchestrator)
    elif tab == Tab.SUBSCRIPTION:
        render_subscription(orchestrator)
    elif tab == Tab.ADMIN:
        st.title(TAB_LABELS[Tab.ADMIN])
        st.subheader("Cadastrar membro da família")
        render_registration_form(orchestrator, key="admin_register")
    elif tab == Tab.SYSTEM_ADMIN:
        st.title(TAB_LABELS[Tab.SYSTEM_ADMIN])
        st.metric("Usuários", len(orchestrator.users))
        st.metric("Lançamentos", len(orchestrator.expense_list))


def render_dashboard(queries: ExpenseQueryExecutor):
    st.title(TAB_LABELS[Tab.DASHBOARD])
    summary = queries.summary(month=date.today())

    col1, col2, col3 = st.columns(3)
    col1.metric("Total do mês", brl(summary.total))
    col2.metric("Pago", brl(summary.paid))
    col3.metric("Pendente", brl(summary.pending))

    st.subheader("Orçamentos")
    for usage in queries.budget_usage(date.today()):
        label = f"{usage.category.value}: {brl(usage.spent)} de {brl(usage.limit)}"
        if usage.over_budget:
            label += " ⚠️"
        st.progress(min(usage.percent_used / 100, 1.0), text=label)


def render_expenses(orchestrator: HouseholdOrchestrator, queries: ExpenseQueryExecutor):
    st.title(TAB_LABELS[Tab.EXPENSES])
    expenses = queries.filter(FilterState())
    if not expenses:
        st.info("Nenhum lançamento ainda. Use 'Novo Lançamento' para começar.")
        return

    for expense in expenses:
        col1, col2, col3 = st.columns([4, 2, 1])
        col1.markdown(f"**{expense.description}** · {expense.category.value} · {queries.user_name(expense.user_id)}")
        col2.markdown(f"{brl(expense.amount)} · {expense.date.isoformat()} · {STATUS_LABELS[expense.status]}")
        if col3.button("Excluir", key=f"del-{expense.id}"):
            st.session_state.pending_delete = expense.id

    pending = st.session_state.get("pending_delete")
    if pending:
        st.warning(DELETE_CONFIRMATION)
        yes, no = st.columns(2)
        if yes.button("Sim, excluir"):
            answer = True
        elif no.button("Não"):
            answer = False
        else:
            return
        st.session_state.pending_delete = None
        try:
            run_async(orchestrator.delete_expense(pending, confirm=lambda _: answer))
        except StorageError as e:
            st.error(f"Não foi possível excluir: {e}")
            st.stop()
        st.rerun()


def render_advanced_history(orchestrator: HouseholdOrchestrator, queries: ExpenseQueryExecutor):
    st.title(TAB_LABELS[Tab.ADVANCED_HISTORY])

    col1, col2, col3 = st.columns(3)
    search = col1.text_input("Buscar")
    category = col2.selectbox(
        "Categoria",
        options=[None] + list(ExpenseCategory),
        format_func=lambda c: "Todas" if c is None else c.value,
    )
    member = col3.selectbox(
        "Membro",
        options=[None] + [u.id for u in orchestrator.users],
        format_func=lambda uid: "Todos" if uid is None else queries.user_name(uid),
    )
    col4, col5 = st.columns(2)
    start = col4.date_input("De", value=None)
    end = col5.date_input("Até", value=None)

    try:
        filters = FilterState(search=search, category=category, user_id=member, start_date=start, end_date=end)
    except ValueError as e:
        st.error(str(e))
        return

    rows = [
        {
            "Data": e.date.isoformat(),
            "Descrição": e.description,
            "Local": e.location,
            "Categoria": e.category.value,
            "Membro": queries.user_name(e.user_id),
            "Valor": float(e.amount),
            "Status": STATUS_LABELS[e.status],
        }
        for e in queries.filter(filters)
    ]
    st.dataframe(rows, use_container_width=True)


def render_reports(orchestrator: HouseholdOrchestrator, queries: ExpenseQueryExecutor):
    st.title(TAB_LABELS[Tab.REPORTS])
    st.bar_chart({k: float(v) for k, v in queries.monthly_totals().items()})

    st.subheader("Pendências")
    for expense in queries.filter(FilterState()):
        if expense.status != ExpenseStatus.PENDING:
            continue
        col1, col2 = st.columns([4, 1])
        col1.markdown(f"{expense.description} · {brl(expense.amount)} · {expense.date.isoformat()}")
        if col2.button("Marcar pago", key=f"paid-{expense.id}"):
            try:
                run_async(orchestrator.update_status(expense.id, ExpenseStatus.PAID))
            except StorageError as e:
                st.error(f"Não foi possível atualizar: {e}")
                st.stop()
            st.rerun()


def render_new_expense(orchestrator: HouseholdOrchestrator):
    st.title(TAB_LABELS[Tab.NEW])
    user = orchestrator.current_user

    with st.form("new_expense"):
        description = st.text_input("Descrição *")
        amount = st.number_input("Valor (R$) *", min_value=0.0, step=0.01, format="%.2f")
        category = st.selectbox("Categoria *", options=list(ExpenseCategory), format_func=lambda c: c.value)
        location = st.text_input("Local")
        spent_on = st.date_input("Data *", value=date.today())
        status = st.selectbox("Status", options=list(ExpenseStatus), format_func=lambda s: STATUS_LABELS[s], index=1)
        notes = st.text_area("Observações")
        submitted = st.form_submit_button("Salvar", type="primary")

    if st.button("Cancelar"):
        orchestrator.select_tab(Tab.EXPENSES)
        st.rerun()

    if submitted:
        try:
            data = NewExpense(
                user_id=user.id,
                amount=Decimal(str(amount)).quantize(Decimal("0.01")),
                description=description,
                location=location,
                category=category,
                date=spent_on,
                status=status,
                notes=notes or None,
            )
            run_async(orchestrator.add_expense(data))
        except ValueError as e:
            st.error(f"Verifique os campos: {e}")
            st.stop()
        except StorageError as e:
            st.error(f"Não foi possível salvar: {e}")
            st.stop()
        st.rerun()


def render_profile(orchestrator: HouseholdOrchestrator):
    st.title(TAB_LABELS[Tab.PROFILE])
    user = orchestrator.current_user

    with st.form("profile"):
        name = st.text_input("Nome", value=user.name)
        email = st.text_input("E-mail", value=user.email)
        avatar = st.text_input("Avatar (URL)", value=user.avatar)
        password = st.text_input("Nova senha", type="password")
        submitted = st.form_submit_button("Salvar alterações")

    if submitted:
        updates = {"name": name, "email": email, "avatar": avatar}
        if password:
            updates["password"] = password
        try:
            with st.spinner("Salvando..."):
                run_async(orchestrator.update_profile(updates))
            st.rerun()
        except (StorageError, ValueError) as e:
            st.error(f"Não foi possível salvar: {e}")

    st.markdown("---")
    st.subheader("Zona de perigo")
    confirmed = st.checkbox(DELETE_ALL_CONFIRMATION)
    if st.button("Excluir todos os lançamentos", disabled=not confirmed):
        try:
            run_async(orchestrator.delete_all_expenses())
        except StorageError as e:
            st.error(f"Não foi possível excluir: {e}")
            st.stop()
        st.rerun()


def render_subscription(orchestrator: HouseholdOrchestrator):
    st.title(TAB_LABELS[Tab.SUBSCRIPTION])
    user = orchestrator.current_user
    if user.is_premium:
        st.success("Você já é assinante Premium. Obrigado!")
        return

    st.markdown("Relatórios avançados, anexos ilimitados e suporte prioritário.")
    if st.button("Assinar Premium", type="primary"):
        run_async(orchestrator.start_checkout())
        st.rerun()


if __name__ == "__main__":
    main()
