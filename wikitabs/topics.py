import random
import re

_TRAILING_PUNCT_RE = re.compile(r"[.,!?;:()\"']$")

RANDOM_TOPICS = tuple(
    dict.fromkeys(
        [
            "Balance", "Harmony", "Discord", "Unity", "Fragmentation", "Clarity", "Ambiguity",
            "Presence", "Absence", "Creation", "Destruction", "Light", "Shadow", "Beginning",
            "Ending", "Rising", "Falling", "Connection", "Isolation", "Hope", "Despair",
            "Order and chaos", "Light and shadow", "Sound and silence", "Form and formlessness",
            "Being and nonbeing", "Presence and absence", "Motion and stillness",
            "Unity and multiplicity", "Finite and infinite", "Sacred and profane",
            "Memory and forgetting", "Question and answer", "Search and discovery",
            "Journey and destination", "Dream and reality", "Time and eternity", "Self and other",
            "Known and unknown", "Spoken and unspoken", "Visible and invisible",
            "Zigzag", "Waves", "Spiral", "Bounce", "Slant", "Drip", "Stretch", "Squeeze", "Float",
            "Fall", "Spin", "Melt", "Rise", "Twist", "Explode", "Stack", "Mirror", "Echo", "Vibrate",
            "Gravity", "Friction", "Momentum", "Inertia", "Turbulence", "Pressure", "Tension",
            "Oscillate", "Fractal", "Quantum", "Entropy", "Vortex", "Resonance", "Equilibrium",
            "Centrifuge", "Elastic", "Viscous", "Refract", "Diffuse", "Cascade", "Levitate",
            "Magnetize", "Polarize", "Accelerate", "Compress", "Undulate",
            "Liminal", "Ephemeral", "Paradox", "Zeitgeist", "Metamorphosis", "Synesthesia",
            "Recursion", "Emergence", "Dialectic", "Apophenia", "Limbo", "Flux", "Sublime",
            "Uncanny", "Palimpsest", "Chimera", "Void", "Transcend", "Ineffable", "Qualia",
            "Gestalt", "Simulacra", "Abyssal",
            "Existential", "Nihilism", "Solipsism", "Phenomenology", "Hermeneutics",
            "Deconstruction", "Postmodern", "Absurdism", "Catharsis", "Epiphany", "Melancholy",
            "Nostalgia", "Longing", "Reverie", "Pathos", "Ethos", "Logos", "Mythos", "Anamnesis",
            "Intertextuality", "Metafiction", "Stream", "Lacuna", "Caesura", "Enjambment",
        ]
    )
)


def clean_clicked_word(word: str) -> str:
    return _TRAILING_PUNCT_RE.sub("", (word or "").strip())


def pick_random_topic(current: str, rng: random.Random | None = None, choices: tuple[str, ...] = RANDOM_TOPICS) -> str:
    """Uniform pick; if it equals the current topic, take the next entry instead."""
    rng = rng or random.Random()
    index = rng.randrange(len(choices))
    picked = choices[index]
    if picked.lower() == (current or "").lower():
        picked = choices[(index + 1) % len(choices)]
    return picked
