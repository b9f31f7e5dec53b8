from datetime import datetime
from html import escape
from typing import Dict, Any, List, Optional
import pandas as pd
import streamlit as st

from .dependencies import parse_dependency_ids
from .engine import TaskScheduler, format_date
from .models import Task


def _task_label(task: Task) -> str:
    return f"#{task.id} {task.title} ({task.effective_duration}d)"


def _dependency_options(scheduler: TaskScheduler, task_id: Optional[int], current: List[int]) -> Dict[int, str]:
    options = {task.id: _task_label(task) for task in scheduler.available_dependencies(task_id)}
    # Keep already selected dependencies visible even though they are not new candidates.
    for dep in current:
        if dep not in options and dep in scheduler.tasks:
            options[dep] = _task_label(scheduler.tasks[dep])
    return options


def render_add_task_form(scheduler: TaskScheduler) -> None:
    with st.form("add_task_form", clear_on_submit=True):
        title = st.text_input("Title", placeholder="Add a new todo")
        due = st.date_input("Due Date", value=None)
        duration = st.number_input(
            "Duration (days)",
            min_value=1,
            value=scheduler.config.default_duration,
            step=1,
        )
        options = _dependency_options(scheduler, None, [])
        dependency_ids = st.multiselect(
            "Dependencies",
            options=list(options.keys()),
            format_func=lambda task_id: options[task_id],
            placeholder="No available dependencies" if not options else "Add dependency...",
        )
        submitted = st.form_submit_button("Add", type="primary", use_container_width=True)

    if submitted:
        due_date = datetime(due.year, due.month, due.day) if due else None
        success, message = scheduler.add_task(
            title, int(duration), dependency_ids, due_date=due_date
        )
        if success:
            st.success(message)
            st.rerun()
        else:
            st.error(message)


def _render_task_card(scheduler: TaskScheduler, task: Task, now: datetime) -> None:
    critical = scheduler.is_critical(task.id)
    badge = '<span class="todo-badge">critical path</span>' if critical else ""

    meta: List[str] = []
    if task.due_date is not None:
        css = "todo-overdue" if task.is_overdue(now) else ""
        meta.append(f'<span class="{css}">Due: {format_date(task.due_date)}</span>')
    start = scheduler.earliest_starts.get(task.id)
    if start is not None:
        meta.append(f"Earliest start: {format_date(start)}")
    meta.append(f"{task.effective_duration} day(s)")

    st.markdown(
        f"""
        <div class="todo-card{' critical' if critical else ''}">
            <div>{escape(task.title)}{badge}</div>
            <div class="todo-meta">{' &bull; '.join(meta)}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )
    if task.image_url:
        st.image(task.image_url, width=160)


def render_task_list(scheduler: TaskScheduler) -> None:
    if not scheduler.tasks:
        st.info("No todos yet. Use the form to add one.")
        return

    now = datetime.now()
    for task in sorted(scheduler.tasks.values(), key=lambda t: (t.created_at, t.id), reverse=True):
        col_card, col_delete = st.columns([8, 1])
        with col_card:
            _render_task_card(scheduler, task, now)
        with col_delete:
            if st.button("✕", key=f"delete_{task.id}", help="Delete todo"):
                success, message = scheduler.remove_task(task.id)
                if success:
                    st.rerun()
                else:
                    st.error(message)

        current = parse_dependency_ids(task.dependency_ids)
        with st.expander(f"Dependencies ({len(current)} selected)"):
            options = _dependency_options(scheduler, task.id, current)
            selected = st.multiselect(
                "Depends on",
                options=list(options.keys()),
                default=[dep for dep in current if dep in options],
                format_func=lambda task_id: options[task_id],
                key=f"deps_{task.id}",
            )
            if st.button("Save dependencies", key=f"save_deps_{task.id}"):
                success, message = scheduler.set_dependencies(task.id, selected)
                if success:
                    st.rerun()
                else:
                    st.error(message)


def render_schedule_table(scheduler: TaskScheduler, theme: Dict[str, Any]) -> None:
    results_df = scheduler.get_results_dataframe()
    if results_df.empty:
        return

    def highlight_critical(row: pd.Series) -> List[str]:
        if row["Critical"] == "Yes":
            return [f"background-color: {theme['critical_soft']}"] * len(row)
        return [""] * len(row)

    st.dataframe(
        results_df.style.apply(highlight_critical, axis=1),
        use_container_width=True,
        hide_index=True,
    )
