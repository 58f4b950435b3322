import asyncio
import datetime
import html
import warnings

import altair as alt
import pandas as pd
import streamlit as st
from altair.utils.deprecation import AltairDeprecationWarning

warnings.filterwarnings("ignore", category=AltairDeprecationWarning)

from algorithms import DateParser, DerivedMetrics
from analysis_service import AnalysisEngine
from avatar_service import AvatarService, CaptureSession
from coaching_service import CoachingService
from config import log_format, runtime_paths
from db import (
    AsyncExerciseRepository,
    AsyncGoalRepository,
    AsyncProfileRepository,
    AsyncWeightLogRepository,
    SettingsRepository,
)
from exercise_store import ExerciseStore
from export_service import ExportService
from goal_store import GoalStore
from localization import translator
from log_config import setup_logging
from models import LEVELS, NO_DATE, Exercise, ExerciseInput, UserProfile
from profile_store import ProfileStore

_ = translator.gettext


class EvolutionApp:
    """Streamlit dashboard for exercise tracking and analysis."""

    def __init__(
        self, db_path: str = "evolution.db", yaml_path: str = "settings.yaml"
    ) -> None:
        self.settings_repo = SettingsRepository(db_path, yaml_path)
        self.user_id = self.settings_repo.get_text("user_id", "local")
        self.theme = self.settings_repo.get_text("theme", "dark")
        translator.set_language(self.settings_repo.get_text("language", "pt"))
        self.exercise_store = ExerciseStore(
            self.user_id,
            AsyncExerciseRepository(db_path),
            AsyncWeightLogRepository(db_path),
        )
        self.goal_store = GoalStore(self.user_id, AsyncGoalRepository(db_path))
        self.profile_store = ProfileStore(self.user_id, AsyncProfileRepository(db_path))
        self.avatars = AvatarService()
        self._configure_page()
        self._state_init()

    def _configure_page(self) -> None:
        st.set_page_config(page_title="Evolution", layout="wide")
        if self.theme == "dark":
            st.markdown(
                "<style>.stApp{background-color:#0a0a0a;color:#e0e0e0;}"
                ".neon{color:#00f0ff;font-family:'Courier New',monospace;}</style>",
                unsafe_allow_html=True,
            )

    def _state_init(self) -> None:
        timeframe = self.settings_repo.get_text("timeframe", "WEEK")
        defaults = {
            "timeframe": timeframe,
            "editing_exercise": None,
            "analysis_category": AnalysisEngine.ALL,
            "analysis_window": timeframe,
            "analysis_sort": "name",
            "analysis_desc": False,
            "expanded_row": None,
            "camera_open": False,
        }
        for key, value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = value

    @staticmethod
    def _run(coro):
        return asyncio.run(coro)

    def _load(self) -> tuple[list[Exercise], UserProfile]:
        try:
            exercises = self._run(self.exercise_store.load())
            self._run(self.goal_store.load())
        except Exception:
            st.error(self.exercise_store.error or ExerciseStore.LOAD_ERROR)
            exercises = self.exercise_store.exercises
        profile = self._run(
            self.profile_store.load(self.settings_repo.get_text("user_name", ""))
        )
        return exercises, profile

    # dashboard -------------------------------------------------------------

    def _profile_card(self, profile: UserProfile) -> None:
        cols = st.columns([1, 3])
        with cols[0]:
            if profile.photo:
                st.image(AvatarService.from_data_url(profile.photo), width=96)
            else:
                st.image(self.avatars.default_avatar(profile.name), width=96)
        with cols[1]:
            st.markdown(
                f"<h3 class='neon'>{html.escape(profile.name)}</h3>",
                unsafe_allow_html=True,
            )
            st.caption(f"{profile.weight:g} kg · {profile.level}")
        with st.expander(_("Perfil")):
            self._profile_form(profile)

    def _profile_form(self, profile: UserProfile) -> None:
        with st.form("profile_form"):
            name = st.text_input("Nome", profile.name)
            weight = st.number_input("Peso (kg)", value=float(profile.weight), step=0.5)
            level = st.selectbox("Nível", LEVELS, index=LEVELS.index(profile.level))
            submitted = st.form_submit_button(_("Salvar"))
        photo = profile.photo
        if st.button("Câmera", key="toggle_camera"):
            st.session_state.camera_open = not st.session_state.camera_open
        if st.session_state.camera_open:
            shot = st.camera_input("Foto de perfil", key="profile_camera")
            if shot is not None:
                session = CaptureSession(shot.getvalue, self.avatars)
                try:
                    session.start()
                    photo = session.capture()
                except RuntimeError as e:
                    st.warning(str(e))
                st.session_state.camera_open = False
        if submitted or photo != profile.photo:
            if not name.strip():
                st.warning("Informe um nome.")
                return
            updated = UserProfile(name=name, weight=weight, level=level, photo=photo)
            try:
                self._run(self.profile_store.update(updated))
            except Exception as e:
                st.error(str(e))
                return
            st.rerun()

    def _timeframe_toggle(self) -> str:
        labels = {"WEEK": _("Semana"), "MONTH": _("Mês")}
        current = st.session_state.timeframe
        choice = st.radio(
            "Período",
            list(labels),
            index=list(labels).index(current),
            format_func=labels.get,
            horizontal=True,
            key="timeframe_radio",
        )
        if choice != current:
            st.session_state.timeframe = choice
            self.settings_repo.set_text("timeframe", choice)
        return choice

    def _sparkline(self, ex: Exercise) -> None:
        points = DerivedMetrics.trend_sequence(ex)
        low, high = DerivedMetrics.trend_bounds(points)
        df = pd.DataFrame(points).melt(
            id_vars=["index", "label"],
            value_vars=["weight", "pb"],
            var_name="series",
            value_name="value",
        )
        chart = (
            alt.Chart(df)
            .mark_line()
            .encode(
                x=alt.X("index", title=None, axis=None),
                y=alt.Y("value", title=None, scale=alt.Scale(domain=[low, high])),
                color=alt.Color("series", legend=None),
                tooltip=["label", "series", "value"],
            )
            .properties(height=80)
        )
        st.altair_chart(chart, use_container_width=True)

    def _exercise_card(self, ex: Exercise) -> None:
        with st.container(border=True):
            st.markdown(f"**{ex.name}**  \n{ex.category}")
            cols = st.columns(3)
            cols[0].metric("Carga", f"{ex.last_weight:g} kg", ex.last_date, delta_color="off")
            cols[1].metric("Recorde", f"{ex.pb_weight:g} kg", ex.pb_date, delta_color="off")
            cols[2].metric("Volume", f"{ex.avg_volume:g}k")
            st.progress(ex.progress / 100, text=f"{ex.progress}%")
            self._sparkline(ex)
            if ex.history:
                st.caption(_("Log de Atividade Recente"))
                for log in ex.history:
                    st.text(f"{log.type:<4} {log.weight:g} kg  {log.date}")
            bcols = st.columns(2)
            if bcols[0].button("Editar", key=f"edit_{ex.id}"):
                st.session_state.editing_exercise = ex.id
                st.rerun()
            if bcols[1].button(_("Excluir"), key=f"delete_{ex.id}"):
                self._run(self.exercise_store.delete(ex.id))
                st.rerun()

    def _exercise_form(self, existing: Exercise | None = None) -> None:
        key = f"exercise_form_{existing.id if existing else 'new'}"
        today = DateParser.format(datetime.date.today())
        base = existing or Exercise(
            id="", name="", category="", last_date=today, pb_date=today
        )
        with st.form(key):
            name = st.text_input("Nome", base.name)
            category = st.text_input(_("Categoria"), base.category)
            cols = st.columns(2)
            last_weight = cols[0].number_input("Última carga", value=float(base.last_weight))
            last_date = cols[1].text_input("Data última carga", base.last_date)
            pb_weight = cols[0].number_input("Recorde pessoal", value=float(base.pb_weight))
            pb_date = cols[1].text_input("Data recorde", base.pb_date)
            avg_volume = st.number_input("Volume médio semanal", value=float(base.avg_volume))
            submitted = st.form_submit_button(_("Salvar"))
        if not submitted:
            return
        if not name.strip() or not category.strip():
            st.warning("Nome e categoria são obrigatórios.")
            return
        data = ExerciseInput(
            name=name,
            category=category,
            last_weight=last_weight,
            last_date=last_date or NO_DATE,
            pb_weight=pb_weight,
            pb_date=pb_date or NO_DATE,
            avg_volume=avg_volume,
        )
        try:
            if existing is None:
                self._run(self.exercise_store.create(data))
            else:
                self._run(self.exercise_store.update(existing.id, existing, data))
        except Exception as e:
            st.error(str(e))
            return
        st.session_state.editing_exercise = None
        st.rerun()

    def _goals_section(self) -> None:
        st.subheader(_("Metas"))
        for goal in self.goal_store.goals:
            cols = st.columns([5, 1])
            cols[0].markdown(f"**{goal.title}**  \n{goal.description}")
            if cols[1].button(_("Excluir"), key=f"del_goal_{goal.id}"):
                self._run(self.goal_store.delete(goal.id))
                st.rerun()
        with st.form("goal_form", clear_on_submit=True):
            title = st.text_input("Título")
            description = st.text_area("Descrição")
            if st.form_submit_button(_("Nova Meta")):
                if title.strip() and description.strip():
                    self._run(self.goal_store.create(title, description))
                    st.rerun()
                else:
                    st.warning("Título e descrição são obrigatórios.")

    def _dashboard_tab(self, exercises: list[Exercise], profile: UserProfile) -> None:
        self._profile_card(profile)
        timeframe = self._timeframe_toggle()
        st.info(f"{_('Dicas do Coach')}: {CoachingService.short_tip(exercises)}")
        scaled = DerivedMetrics.scale_for_timeframe(exercises, timeframe)
        editing = st.session_state.editing_exercise
        for ex in scaled:
            if ex.id == editing:
                self._exercise_form(self.exercise_store.get(ex.id))
            else:
                self._exercise_card(ex)
        with st.expander(_("Novo Exercício")):
            self._exercise_form()
        self._goals_section()
        cols = st.columns(2)
        cols[0].download_button(
            _("Exportar CSV"),
            ExportService.report_csv(scaled, self.goal_store.goals, profile, timeframe),
            file_name=ExportService.report_filename("csv"),
            mime="text/csv",
            key="report_csv",
        )
        cols[1].download_button(
            _("Gerar PDF"),
            ExportService.report_html(scaled, self.goal_store.goals, profile, timeframe),
            file_name=ExportService.report_filename("html"),
            mime="text/html",
            key="report_html",
        )

    # analysis --------------------------------------------------------------

    def _engine(self, exercises: list[Exercise]) -> AnalysisEngine:
        policy = self.settings_repo.get_text("unknown_date_policy", "january")
        engine = AnalysisEngine(st.session_state.analysis_window, DateParser(policy))
        engine.select_category(st.session_state.analysis_category)
        engine.sort_key = st.session_state.analysis_sort
        engine.sort_desc = st.session_state.analysis_desc
        engine.expanded_id = st.session_state.expanded_row
        return engine

    def _analysis_tab(self, exercises: list[Exercise]) -> None:
        labels = {
            "WEEK": _("Semana"),
            "MONTH": _("Mês"),
            "YEAR": _("Ano"),
            "CUSTOM": _("Personalizado"),
        }
        categories = AnalysisEngine.categories(exercises)
        cols = st.columns(2)
        category = cols[0].selectbox(_("Categoria"), categories, key="analysis_category")
        window = cols[1].selectbox(
            _("Janela de Tempo"),
            AnalysisEngine.WINDOWS,
            format_func=labels.get,
            key="analysis_window",
        )
        engine = self._engine(exercises)
        engine.select_category(category)
        engine.select_window(window)
        if window == "CUSTOM":
            dcols = st.columns(2)
            start = dcols[0].date_input("Início", value=None, key="analysis_start")
            end = dcols[1].date_input("Fim", value=None, key="analysis_end")
            try:
                engine.set_custom_range(start, end)
            except ValueError as e:
                st.warning(str(e))
        scols = st.columns(len(AnalysisEngine.SORT_KEYS))
        for col, key in zip(scols, AnalysisEngine.SORT_KEYS):
            arrow = ""
            if key == engine.sort_key:
                arrow = " ↓" if engine.sort_desc else " ↑"
            if col.button(f"{key}{arrow}", key=f"sort_{key}"):
                engine.sort_by(key)
                st.session_state.analysis_sort = engine.sort_key
                st.session_state.analysis_desc = engine.sort_desc
                st.rerun()
        now = datetime.datetime.now()
        rows = engine.filtered(exercises, now)
        if not rows:
            st.info(_("Nenhum dado encontrado para este intervalo."))
        for ex in rows:
            expanded = ex.id == engine.expanded_id
            with st.container(border=True):
                cols = st.columns([3, 2, 1, 1, 1])
                cols[0].markdown(f"**{ex.name}**")
                cols[1].text(ex.category)
                cols[2].text(f"{ex.last_weight:g}")
                cols[3].text(f"{ex.pb_weight:g}")
                cols[4].text(f"{ex.progress}%")
                if st.button("▾" if expanded else "▸", key=f"row_{ex.id}"):
                    engine.toggle_row(ex.id)
                    st.session_state.expanded_row = engine.expanded_id
                    st.rerun()
                if expanded:
                    history = engine.expanded_history(exercises)
                    if not history:
                        st.caption(_("Nenhum log detalhado disponível para este ciclo."))
                    for log in history:
                        st.text(f"{log.type:<4} {log.weight:g} kg  {log.date}")
        st.markdown(f"**{engine.timeframe_label()}**")
        st.write(engine.insight(exercises, now))
        data = engine.export_csv(exercises, now)
        st.download_button(
            _("Exportar CSV"),
            data,
            file_name=engine.export_filename(now.date()),
            mime="text/csv",
            disabled=not data,
            key="analysis_csv",
        )

    def _settings_sidebar(self) -> None:
        st.sidebar.header("Configurações")
        language = st.sidebar.selectbox(
            "Idioma", ["pt", "en"], index=["pt", "en"].index(translator.language)
        )
        if language != translator.language:
            self.settings_repo.set_text("language", language)
            translator.set_language(language)
            st.rerun()
        if st.sidebar.button("Alternar tema"):
            self.theme = "light" if self.theme == "dark" else "dark"
            self.settings_repo.set_text("theme", self.theme)
            st.rerun()

    def run(self) -> None:
        exercises, profile = self._load()
        st.markdown("<h1 class='neon'>EVOLUTION</h1>", unsafe_allow_html=True)
        self._settings_sidebar()
        dashboard_tab, analysis_tab = st.tabs([_("Painel"), _("Análise")])
        with dashboard_tab:
            self._dashboard_tab(exercises, profile)
        with analysis_tab:
            self._analysis_tab(exercises)


if __name__ == "__main__":
    db_path, yaml_path = runtime_paths()
    app = EvolutionApp(db_path=db_path, yaml_path=yaml_path)
    setup_logging(log_format(app.settings_repo.get_text("log_format", "text")))
    app.run()
