from __future__ import annotations

import json

import pandas as pd
import streamlit as st

from capstone.config import Settings, configure_logging
from capstone.connectors import ApiClient, CatalogSource
from capstone.errors import CapstoneError, NoMoreCandidates
from capstone.models import Preferences
from capstone.parsers import build_skill_profile
from capstone.recommendations import Favorites, RecommendationSet
from capstone.reporting import export_payload, gap_frame, recommendation_frame
from capstone.scoring import analyze_skill_gap

APP_TITLE = "Capstone Compass"
APP_SUBTITLE = "Performance, project recommendations and skill gaps in one place"
DEMO_USERNAME = "demo"
DEMO_PASSWORD = "demo"
DEMO_STUDENT_ID = 1001
DIFFICULTY_OPTIONS = ["", "Beginner", "Intermediate", "Advanced"]

SETTINGS = Settings.from_env()
configure_logging(SETTINGS.log_level)


def build_source():
    if SETTINGS.offline:
        return CatalogSource()
    return ApiClient(SETTINGS)


def load_favorites(student_id) -> Favorites:
    return Favorites.from_records(st.session_state["favorites_store"].get(str(student_id), []))


def save_favorites(student_id, favorites: Favorites):
    st.session_state["favorites_store"][str(student_id)] = favorites.to_records()


def ensure_state():
    if "authenticated" not in st.session_state:
        st.session_state["authenticated"] = False
    if "favorites_store" not in st.session_state:
        st.session_state["favorites_store"] = {}
    if "preferences" not in st.session_state:
        st.session_state["preferences"] = Preferences()
    if "recommendation_set" not in st.session_state:
        st.session_state["recommendation_set"] = None
    if "performance" not in st.session_state:
        st.session_state["performance"] = None


def start_session(student_id):
    st.session_state["authenticated"] = True
    st.session_state["student_id"] = student_id
    st.session_state["recommendation_set"] = RecommendationSet(
        student_id,
        load_favorites(student_id),
        st.session_state["preferences"],
    )


def end_session():
    rec_set = st.session_state.get("recommendation_set")
    if rec_set is not None:
        rec_set.cancel()
    st.session_state["authenticated"] = False
    st.session_state["recommendation_set"] = None
    st.session_state["performance"] = None


def try_login(username: str, password: str) -> bool:
    return username.strip().lower() == DEMO_USERNAME and password == DEMO_PASSWORD


def render_login():
    with st.form("login_form"):
        user_in = st.text_input("Username", value="demo")
        pass_in = st.text_input("Password", type="password", value="demo")
        if st.form_submit_button("Sign In"):
            if try_login(user_in, pass_in):
                start_session(DEMO_STUDENT_ID)
                st.rerun()
            else:
                st.error("Invalid credentials.")


def render_performance(source, student_id):
    if st.session_state["performance"] is None:
        try:
            st.session_state["performance"] = source.fetch_performance(student_id)
        except CapstoneError:
            st.error("Failed to fetch student data.")
            return
    performance = st.session_state["performance"]
    with st.expander("Academic Performance", expanded=True):
        if performance.gpa is not None:
            st.metric("CGPA", f"{performance.gpa:.2f}", f"{len(performance.course_history)} courses")
        comp_df = pd.DataFrame(
            [{"Competency": name, "Score": score} for name, score in performance.competencies.items() if score > 0]
        )
        if not comp_df.empty:
            st.bar_chart(comp_df.set_index("Competency"))
        st.dataframe(
            pd.DataFrame(
                [
                    {"Course": r.course, "Subject": r.subject, "Grade": r.grade, "Semester": r.semester}
                    for r in performance.course_history[:5]
                ]
            ),
            hide_index=True,
            use_container_width=True,
        )


def render_preferences():
    prefs: Preferences = st.session_state["preferences"]
    with st.expander("Preferences", expanded=False):
        with st.form("preferences_form"):
            interests = st.text_area("Interests (comma separated)", value=prefs.interests)
            difficulty = st.selectbox(
                "Preferred difficulty",
                DIFFICULTY_OPTIONS,
                index=DIFFICULTY_OPTIONS.index(prefs.preferred_difficulty or ""),
                format_func=lambda d: d or "No preference",
            )
            avoid = st.text_area("Topics to avoid (comma separated)", value=prefs.avoid_topics)
            notes = st.text_area("Additional notes", value=prefs.additional_notes)
            if st.form_submit_button("Save Preferences"):
                prefs.interests = interests
                prefs.preferred_difficulty = difficulty
                prefs.avoid_topics = avoid
                prefs.additional_notes = notes
                st.success("Preferences saved.")


def render_recommendations(source, rec_set: RecommendationSet):
    with st.expander("Recommended Capstone Projects", expanded=True):
        if not rec_set.initialized:
            try:
                rec_set.initialize(source)
            except CapstoneError:
                st.error("Failed to load recommendations.")
                return

        st.dataframe(recommendation_frame(rec_set.displayed, rec_set.favorites), hide_index=True, use_container_width=True)
        for position, item in enumerate(rec_set.displayed):
            favorited = rec_set.is_favorited(position)
            c1, c2, c3, c4 = st.columns([4, 1, 1, 1])
            c1.markdown(f"**{item.project_title}** ({item.score * 100:.0f}% match)  \n{item.reason}")
            if c2.button("Unstar" if favorited else "Star", key=f"fav_{position}"):
                rec_set.favorites.toggle(item)
                save_favorites(rec_set.student_id, rec_set.favorites)
                st.rerun()
            if c3.button("Regenerate", key=f"regen_{position}", disabled=favorited):
                try:
                    rec_set.regenerate_one(position, source)
                    st.rerun()
                except NoMoreCandidates:
                    st.warning("No more unique recommendations available.")
                except CapstoneError as exc:
                    st.error(str(exc))
            if c4.button("Skill Gap", key=f"gap_{position}"):
                st.session_state["gap_project"] = item

        if st.button("Regenerate All (Keep Favorites)"):
            try:
                rec_set.regenerate_all(source)
                st.rerun()
            except NoMoreCandidates:
                st.warning("No more unique recommendations available.")
            except CapstoneError:
                st.error("Failed to regenerate recommendations.")


def render_skill_gap():
    item = st.session_state.get("gap_project")
    performance = st.session_state.get("performance")
    if item is None:
        return
    profile = build_skill_profile(item.project_title, item.reason)
    report = analyze_skill_gap(
        performance.competencies if performance else None,
        profile,
        performance.course_history if performance else None,
    )
    with st.expander("Skill Gap Analysis", expanded=True):
        st.markdown(f"### {report.project_title}  \n`{report.project_difficulty}`")
        c1, c2 = st.columns(2)
        c1.metric("Overall Readiness", f"{report.overall_readiness:.0f}%", report.readiness_level)
        c1.progress(report.overall_readiness / 100.0)
        c2.metric("Estimated Prep Time", report.estimated_prep_time)
        st.dataframe(gap_frame(report), hide_index=True, use_container_width=True)
        for entry in report.strong_areas + report.areas_to_improve:
            st.caption(f"{entry.skill_name}: {entry.recommendation}")
        st.download_button(
            "Download Skill Gap JSON",
            data=json.dumps(export_payload(report), indent=2),
            file_name=f"skill_gap_{item.project_id}.json",
            mime="application/json",
        )


st.set_page_config(page_title=APP_TITLE, layout="wide")
st.title(APP_TITLE)
st.caption(APP_SUBTITLE)
ensure_state()

if not st.session_state["authenticated"]:
    st.caption("Demo credentials: `demo` / `demo`")
    render_login()
else:
    source = build_source()
    student_id = st.session_state["student_id"]
    with st.sidebar:
        st.markdown("### Session")
        st.success(f"Signed in as student {student_id}")
        favorites = st.session_state["recommendation_set"].favorites
        st.markdown(f"### Favorites ({len(favorites)})")
        if not len(favorites):
            st.caption("Star recommendations to pin them here.")
        for fav in list(favorites):
            st.write(f"**{fav.project_title}** ({fav.score * 100:.0f}% match)")
            if st.button("Unstar", key=f"unstar_{fav.project_id}"):
                favorites.remove(fav.project_id)
                save_favorites(student_id, favorites)
                st.rerun()
        if len(favorites) and st.button("Clear All Favorites"):
            favorites.clear()
            save_favorites(student_id, favorites)
            st.rerun()
        if st.button("Sign Out"):
            end_session()
            st.rerun()
    render_performance(source, student_id)
    render_preferences()
    render_recommendations(source, st.session_state["recommendation_set"])
    render_skill_gap()
