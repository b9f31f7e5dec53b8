"""
Things To Do - dependency-aware todo list
=========================================
A todo list where every task has a duration in days and may depend on other
tasks. The app blocks dependencies that would create a cycle, shows when each
task can start at the earliest and highlights the critical path.

Run with:  streamlit run todo_app.py
"""

import logging

import streamlit as st

from planner.config import SchedulerConfig
from planner.engine import TaskScheduler
from planner.ui_components import render_add_task_form, render_schedule_table, render_task_list
from planner.ui_styles import THEMES, DEFAULT_THEME, get_active_theme, get_theme_css

logger = logging.getLogger(__name__)


def main():
    """Main Streamlit application."""

    st.set_page_config(
        page_title="Things To Do",
        page_icon="✅",
        layout="wide",
    )

    if "scheduler" not in st.session_state:
        st.session_state.scheduler = TaskScheduler(SchedulerConfig.from_env())
    scheduler = st.session_state.scheduler

    with st.sidebar:
        theme_name = st.selectbox("Theme", options=list(THEMES.keys()),
                                  index=list(THEMES.keys()).index(DEFAULT_THEME))
    theme = get_active_theme(theme_name)
    st.markdown(get_theme_css(theme), unsafe_allow_html=True)

    st.title("Things To Do App")

    # The schedule is a pure function of the current task list; recompute on every run.
    success, message = scheduler.calculate()
    if not success:
        logger.warning(message)
        st.error(message)

    col1, col2 = st.columns([1, 2])

    with col1:
        st.header("New Todo")
        render_add_task_form(scheduler)

        st.divider()
        st.metric("Todos", len(scheduler.tasks))
        st.metric("Project Duration", f"{scheduler.project_duration} days")
        if scheduler.critical_path:
            titles = [scheduler.tasks[task_id].title for task_id in scheduler.critical_path]
            st.markdown("**Critical Path**")
            st.markdown(" → ".join(titles))

    with col2:
        st.header("Todos")
        render_task_list(scheduler)

    if scheduler.tasks:
        st.divider()
        tab1, tab2 = st.tabs(["📅 Schedule", "📝 Calculation Details"])
        with tab1:
            render_schedule_table(scheduler, theme)
        with tab2:
            log_text = "\n".join(scheduler.calculation_log)
            st.text_area("Calculation Steps", value=log_text, height=400, disabled=True)


if __name__ == "__main__":
    main()
