SUPPORTED_LANGUAGES = ("en", "es")


class Translator:
    def __init__(self, language: str = "en") -> None:
        self.language = language
        self.translations = {
            "en": {},
            "es": {
                "Take more rest this week": "Descansa más esta semana",
                "Weekly volume rose more than 30% over the previous week. Consider a deload or extra rest.": (
                    "El volumen semanal subió >30% vs la semana anterior. "
                    "Considera deload o más descanso."
                ),
                "You have trained {days} days in a row. Schedule a rest day or lower the intensity.": (
                    "Has entrenado {days} días seguidos. "
                    "Programa un día de descanso o baja la intensidad."
                ),
                "Improve your adherence": "Mejora la adherencia",
                "Your average adherence this week is below 60%. Adjust your targets or simplify your sessions.": (
                    "Tu adherencia media esta semana está por debajo del 60%. "
                    "Ajusta objetivos o simplifica sesiones."
                ),
                "New PR on {exercise}!": "¡Nuevo PR en {exercise}!",
                "Best recent estimated 1RM: {one_rep_max:.1f} kg.": (
                    "Mejor 1RM estimada reciente: {one_rep_max:.1f} kg."
                ),
                "Increase the load on {exercise}": "Aumenta peso en {exercise}",
                "You met and beat your target reps with high effort in your last sessions. Raise the load by 2-5%.": (
                    "Has cumplido y superado las reps objetivo con alto esfuerzo "
                    "en tus últimas sesiones. Sube 2-5% la carga."
                ),
                "Weekly volume": "Volumen semanal",
                "Your accumulated volume this week: {volume} kg·reps.": (
                    "Tu volumen acumulado esta semana: {volume} kg·reps."
                ),
            },
        }

    def gettext(self, key: str) -> str:
        return self.translations.get(self.language, {}).get(key, key)

    def format(self, key: str, **values) -> str:
        """Translate ``key`` and fill in its placeholders."""
        return self.gettext(key).format(**values)
