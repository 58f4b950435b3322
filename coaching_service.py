from __future__ import annotations
from typing import Sequence

from models import Exercise


class CoachingService:
    """Generate coaching text from simple rankings of the exercise list."""

    EMPTY_TIP = (
        "Inicie seus registros para que eu possa analisar sua performance biomecânica."
    )
    EMPTY_ANALYSIS = (
        "Sem dados suficientes para gerar um relatório técnico de tendências."
    )
    FOCUS_THRESHOLD = 60
    HEALTHY_THRESHOLD = 70
    PEAK_THRESHOLD = 85

    @classmethod
    def short_tip(cls, exercises: Sequence[Exercise]) -> str:
        if not exercises:
            return cls.EMPTY_TIP
        # min/max keep the first of equal candidates
        focus = min(exercises, key=lambda ex: ex.progress)
        if focus.progress < cls.FOCUS_THRESHOLD:
            return (
                f"Foco total no {focus.name}. Sua eficiência de {focus.progress}% "
                "indica que precisamos ajustar a cadência antes de subir a carga."
            )
        strongest = max(exercises, key=lambda ex: ex.pb_weight)
        return (
            f"Performance sólida no {strongest.name}. Continue explorando a "
            "sobrecarga progressiva nos microciclos de força."
        )

    @classmethod
    def deep_analysis(cls, exercises: Sequence[Exercise]) -> str:
        if not exercises:
            return cls.EMPTY_ANALYSIS
        avg_progress = sum(ex.progress for ex in exercises) / len(exercises)
        total_volume = sum(ex.avg_volume for ex in exercises)
        analysis = (
            f"Baseado em {len(exercises)} exercícios chave, sua eficiência média "
            f"está em {avg_progress:.1f}%. "
        )
        if avg_progress > cls.PEAK_THRESHOLD:
            analysis += (
                "Identificamos uma fase de pico de performance. Momento ideal "
                "para testar novos RPs em exercícios compostos."
            )
        elif avg_progress > cls.HEALTHY_THRESHOLD:
            analysis += (
                "Sua progressão está linear e saudável. O volume total de "
                f"{total_volume:.1f}k indica boa capacidade de recuperação."
            )
        else:
            analysis += (
                "Os dados mostram um possível platô. Considere reduzir o volume "
                "e focar na qualidade técnica para reestabelecer a progressão."
            )
        return analysis
