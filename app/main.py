import logging

import streamlit as st
from pourover.engine import (
    COFFEE_MAX_G,
    DEFAULT_COFFEE_G,
    DEFAULT_RATIO,
    DEFAULT_STRENGTH,
    DEFAULT_TASTE_PROFILE,
    METHOD_NOTES,
    RATIO_MAX,
    RATIO_MIN,
    RECOMMENDED_MIN_COFFEE_G,
    STRENGTHS,
    TASTE_PROFILES,
    clamp_parameters,
    compute_schedule,
    format_time,
    step_instruction,
)
from pourover.timer import BrewTimer


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

REFRESH_S = 0.5

TASTE_LABELS = {"standard": "Standard", "sweet": "Sweeter", "bright": "Brighter"}
STRENGTH_LABELS = {"light": "Light", "strong": "Strong", "stronger": "Stronger"}


st.title("Tetsu Kasuya 4:6 Method ☕")

with st.expander("About the 4:6 method"):
    for paragraph in METHOD_NOTES:
        st.write(paragraph)

st.subheader("Inputs")

coffee_g = st.number_input(
    "Coffee (g)", min_value=0.0, max_value=COFFEE_MAX_G, value=DEFAULT_COFFEE_G, step=1.0
)
st.caption(f"Recommended minimum quantity is {RECOMMENDED_MIN_COFFEE_G}g, finest grind")

ratio = st.slider("Ratio", min_value=RATIO_MIN, max_value=RATIO_MAX, value=DEFAULT_RATIO)
st.caption(f"Current ratio: 1:{ratio}")

col1, col2 = st.columns(2)
with col1:
    taste_profile = st.selectbox(
        "Taste profile",
        TASTE_PROFILES,
        index=TASTE_PROFILES.index(DEFAULT_TASTE_PROFILE),
        format_func=TASTE_LABELS.get,
    )
with col2:
    strength = st.selectbox(
        "Strength",
        STRENGTHS,
        index=STRENGTHS.index(DEFAULT_STRENGTH),
        format_func=STRENGTH_LABELS.get,
    )

params = clamp_parameters(coffee_g, ratio, taste_profile, strength)
schedule = compute_schedule(params)

# one timer per browser session; schedule length follows the inputs
if "brew_timer" not in st.session_state:
    st.session_state["brew_timer"] = BrewTimer(total_steps=schedule.total_steps)
timer: BrewTimer = st.session_state["brew_timer"]
timer.total_steps = schedule.total_steps

st.write(f"**Total water:** {round(schedule.total_water_g)}g")


@st.fragment(run_every=REFRESH_S)
def pour_schedule():
    state = timer.state()

    left, right = st.columns([3, 1])
    with left:
        st.subheader("Pour Schedule")
    with right:
        st.markdown(f"### {format_time(state.elapsed_seconds)}")
        if not state.running:
            st.button("▶ Start", key="timer_start", on_click=timer.start)
        else:
            st.button("■ Reset", key="timer_reset", on_click=timer.reset)

    for step in schedule.pours:
        dot = "●" if step.index <= state.current_step_index else "○"
        line = f"`{format_time(step.start_s)}` {dot} {step_instruction(step)}"
        if step.index == state.current_step_index:
            line = f"**{line}**"
        st.markdown(line)


pour_schedule()

st.divider()
st.subheader("Pours")
st.table(schedule.as_rows())
