"""Simulado GM: study, mock exam and review pages."""
import sys
from pathlib import Path

# Ensure project root is in path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import streamlit as st

from db import backend_configured, get_progress_store
from simulado import config
from simulado.composer import SIMULATION_SIZE
from simulado.engine import ExamTimer, SimulationSession, StudySession
from simulado.errors import AuthenticationRequired, InsufficientQuestions, ProgressStoreError
from simulado.loader import get_repository
from simulado.progress import FREE_QUESTION_LIMIT, LocalProgressStore
from simulado.subjects import CANONICAL_SUBJECTS

PAGES = ["Painel", "Estudar", "Simulado", "Revisão"]


@st.cache_resource
def local_store() -> LocalProgressStore:
    return LocalProgressStore(config.progress_file())


def progress_store():
    return get_progress_store() if backend_configured() else local_store()


def load_corpus():
    corpus = get_repository().load_all_sync()
    if not corpus:
        st.error("Nenhuma questão carregada. Verifique SIMULADO_DATA_DIR / SIMULADO_SOURCES.")
        st.stop()
    return corpus


def show_question(question, number, total):
    st.subheader(f"Questão {number} de {total}")
    if question.origin:
        st.caption(f"{question.origin.city} • {question.origin.year} • {question.origin.board}")
    if question.supporting_text:
        with st.expander("Texto de apoio"):
            st.write(question.supporting_text)
    st.write(question.statement)


st.set_page_config(page_title="Simulado GM", layout="wide")
st.sidebar.title("Simulado GM")
page = st.sidebar.radio("Navegar", PAGES, label_visibility="collapsed")
store = progress_store()

try:
    # ----- Painel -----
    if page == "Painel":
        st.header("Painel")
        progress = store.get_progress()
        col1, col2, col3, col4 = st.columns(4)
        col1.metric("Questões respondidas", progress.total_answered)
        col2.metric("Acertos", progress.total_correct)
        col3.metric("Média nos simulados", store.get_average_score())
        col4.metric("Tempo de estudo", ExamTimer.format(store.get_total_study_time()))
        latest = store.get_latest_simulation()
        if latest:
            st.info(f"Último simulado: {latest.score:.1f} pontos ({'aprovado' if latest.passed else 'reprovado'})")
        stats = store.get_subject_statistics()
        if stats:
            st.subheader("Desempenho por matéria")
            st.table([{"Matéria": s, **v} for s, v in stats.items()])

    # ----- Estudar -----
    elif page == "Estudar":
        st.header("Estudar por matéria")
        if not store.is_premium():
            st.caption(f"Plano gratuito: {store.total_answered()}/{FREE_QUESTION_LIMIT} questões")
        study = st.session_state.get("study")
        if study is None or study.finished:
            subject = st.selectbox("Matéria", CANONICAL_SUBJECTS)
            if st.button("Começar", type="primary"):
                st.session_state["study"] = StudySession(load_corpus(), subject, store)
                st.session_state["study_feedback"] = None
                st.rerun()
            st.stop()

        q = study.current_question()
        show_question(q, study.current_index + 1, len(study.questions))
        feedback = st.session_state.get("study_feedback")
        if feedback is None:
            choice = st.radio("Alternativas", list(q.options), format_func=lambda k: f"{k.upper()}) {q.options[k]}")
            if st.button("Responder", type="primary"):
                st.session_state["study_feedback"] = study.answer(choice)
                st.rerun()
        else:
            if feedback:
                st.success("Correto!")
            else:
                st.error(f"Incorreto. Resposta: {q.correct.upper()}")
            if q.explanation:
                st.info(q.explanation)
            if study.limit_reached:
                st.warning("Você atingiu o limite de questões gratuitas.")
            if st.button("Próxima"):
                study.next()
                st.session_state["study_feedback"] = None
                st.rerun()

    # ----- Simulado -----
    elif page == "Simulado":
        st.header("Simulado")
        st.caption(f"{SIMULATION_SIZE} questões · 4 horas · pesos diferentes por matéria · aprovação com 50 pontos")
        session = st.session_state.get("simulation")
        if session is None:
            if store.has_reached_free_simulation_limit():
                st.warning("O plano gratuito inclui 1 simulado.")
                st.stop()
            if st.button("Iniciar simulado", type="primary"):
                session = SimulationSession(load_corpus(), store)
                try:
                    composition = session.start()
                except InsufficientQuestions as e:
                    st.error(f"Não há questões suficientes. Encontradas: {e.composition.size}/{SIMULATION_SIZE}")
                    st.stop()
                if not composition.is_complete:
                    st.warning(f"Simulado gerado com {composition.size} questões (ideal: {SIMULATION_SIZE})")
                st.session_state["simulation"] = session
                st.rerun()
            st.stop()

        if session.result is None:
            remaining = session.tick()
        elif not session.recorded:
            session.submit()
        if session.result is not None:
            result = session.result
            st.metric("Pontuação", f"{result.score:.1f}")
            st.write("Aprovado!" if result.passed else "Continue estudando!")
            st.table([{"Matéria": s, **v.to_dict()} for s, v in result.score_by_subject.items()])
            if st.button("Novo simulado"):
                del st.session_state["simulation"]
                st.rerun()
            st.stop()

        st.sidebar.metric("Tempo restante", ExamTimer.format(remaining))
        st.sidebar.caption(f"{len(session.answers)}/{len(session.questions)} respondidas")
        idx = session.current_index
        q = session.current_question()
        show_question(q, idx + 1, len(session.questions))
        keys = list(q.options)
        chosen = session.answers.get(idx)
        choice = st.radio(
            "Alternativas",
            keys,
            index=keys.index(chosen) if chosen in keys else None,
            format_func=lambda k: f"{k.upper()}) {q.options[k]}",
            key=f"sim_{session.session_id}_{idx}",
        )
        if choice is not None:
            session.answer(idx, choice)
        col1, col2, col3 = st.columns([1, 1, 2])
        with col1:
            if st.button("Anterior"):
                session.previous()
                st.rerun()
        with col2:
            if st.button("Próxima"):
                session.next()
                st.rerun()
        with col3:
            if st.button("Finalizar simulado"):
                session.submit()
                st.rerun()

    # ----- Revisão -----
    elif page == "Revisão":
        st.header("Revisão de erros")
        incorrect = store.get_incorrect()
        if not incorrect:
            st.success("Nenhuma questão errada para revisar.")
        for record in incorrect:
            q = record.question
            with st.expander(f"{record.subject} · {record.question_id}"):
                st.write(q.statement)
                st.write(f"Sua resposta: {record.user_answer.upper()} · Correta: {q.correct.upper()}")
                if q.explanation:
                    st.info(q.explanation)

except AuthenticationRequired:
    st.error("Faça login para continuar.")
except ProgressStoreError as e:
    st.error(f"Não foi possível salvar seu progresso. {e}")
