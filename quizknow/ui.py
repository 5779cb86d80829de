import logging
import streamlit as st

from quizknow.app_state import current_role
from quizknow.auth import create_user, authenticate_user

logger = logging.getLogger(__name__)


def apply_global_styles():
    st.markdown(
        """
        <style>
        @import url('https://fonts.googleapis.com/css2?family=Space+Grotesk:wght@400;600;700&family=IBM+Plex+Sans:wght@400;600&display=swap');

        :root {
            --bg-0: #0b0f14;
            --bg-1: #0f141b;
            --fg-0: #e6edf3;
            --fg-1: #c6d1dc;
            --accent: #4cc9f0;
            --accent-2: #80ed99;
        }

        .stApp {
            background: radial-gradient(1200px 600px at 15% -10%, #1a2230 0%, var(--bg-0) 60%);
            color: var(--fg-0);
            font-family: "IBM Plex Sans", sans-serif;
        }

        h1, h2, h3, h4 {
            font-family: "Space Grotesk", sans-serif;
            letter-spacing: 0.3px;
        }

        .hero {
            padding: 1.5rem 1.75rem;
            background: linear-gradient(120deg, #141b24 0%, #0f141b 55%, #111925 100%);
            border: 1px solid #1f2a38;
            border-radius: 16px;
            box-shadow: 0 12px 40px rgba(0, 0, 0, 0.35);
            margin-bottom: 1.5rem;
        }

        .hero p {
            color: var(--fg-1);
            margin: 0;
        }

        [data-testid="stSidebarNav"] {
            display: none;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


def render_hero(title: str, subtitle: str):
    st.markdown(
        f"""
        <div class="hero">
            <h2>{title}</h2>
            <p>{subtitle}</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


def render_sidebar():
    with st.sidebar:
        st.header("Account")
        render_auth()

        st.divider()

        render_nav()


def render_auth():
    if st.session_state.user is None:
        auth_options = ["Sign in", "Register"]
        if st.session_state.get("pending_auth_tab"):
            st.session_state["auth_tab"] = auth_options[0]
            st.session_state.reg_success = True
            st.session_state.pending_auth_tab = False
        auth_tab = st.selectbox("Account", auth_options, key="auth_tab")
        if auth_tab == auth_options[0]:
            if st.session_state.get("reg_success"):
                st.success("Registered. You can sign in now.")
                st.session_state.reg_success = False
            email = st.text_input("Email", key="login_email")
            password = st.text_input("Password", type="password", key="login_password")
            if st.button("Sign in", key="login_btn"):
                try:
                    user = authenticate_user(email, password)
                    if user:
                        st.session_state.user = {
                            "id": user.id,
                            "email": user.email,
                            "role": user.role,
                            "full_name": user.full_name,
                        }
                        st.rerun()
                    else:
                        st.error("Wrong email or password")
                except Exception:
                    logger.exception("Sign-in failed")
                    st.error("Could not sign in. Please try again.")
        else:
            reg_email = st.text_input("Email", key="reg_email")
            reg_name = st.text_input("Full name", key="reg_name")
            reg_password = st.text_input("Password", type="password", key="reg_password")
            role_choice = st.selectbox("Role", ["student", "instructor"], key="reg_role")
            if st.button("Register", key="reg_btn"):
                try:
                    create_user(
                        reg_email,
                        reg_password,
                        full_name=reg_name,
                        role=role_choice,
                    )
                    st.session_state.pending_auth_tab = True
                    st.rerun()
                except ValueError as e:
                    st.error(str(e))
                except Exception:
                    logger.exception("Registration failed")
                    st.error("Could not register. Please try again.")
    else:
        name = st.session_state.user.get("full_name") or st.session_state.user.get("email")
        st.markdown(f"**Signed in:** {name} ({st.session_state.user.get('role')})")
        if st.button("Sign out", key="logout_btn"):
            st.session_state.user = None
            st.session_state.active_session_id = None
            st.rerun()


def render_nav():
    role = current_role()

    st.header("Menu")
    st.page_link("app.py", label="Home", icon="🏠")
    st.page_link("pages/1_Quizzes.py", label="Quizzes", icon="📝")
    if role in ("instructor", "admin"):
        st.page_link("pages/2_Create_Quiz.py", label="Create quiz", icon="🛠️")
    st.page_link("pages/3_Results.py", label="Results", icon="📊")


def format_score(score, max_score):
    def as_int_or_float(value):
        try:
            num = float(value)
        except (TypeError, ValueError):
            return value
        if num.is_integer():
            return int(num)
        return num

    return f"{as_int_or_float(score)}/{as_int_or_float(max_score)}"


def format_seconds(seconds: int) -> str:
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes:02d}:{secs:02d}"
