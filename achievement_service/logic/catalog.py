"""
Achievement rule tables

Declarative description of which achievement definitions each evaluator
family may award. Evaluators read these tables; they never branch on
achievement ids or display names.
"""
from typing import Dict, Any, List, Optional, Tuple

from achievement_service.config import get_settings


CATEGORIES: Tuple[str, ...] = ('progress', 'module', 'streak', 'velocity', 'horario', 'social')

# condition_type -> category that owns it
CONDITION_CATEGORIES: Dict[str, str] = {
    'topics_completed': 'progress',
    'module_completed': 'module',
    'all_modules_completed': 'module',
    'streak_days': 'streak',
    'topics_per_day': 'velocity',
    'night_owl': 'horario',
    'early_riser': 'horario',
    'forum_replies': 'social',
    'forum_participations': 'social',
}

# Threshold rules: award every definition whose condition_value <= metric.
# condition_type -> name of the metric the evaluator computes
THRESHOLD_METRICS: Dict[str, str] = {
    'topics_completed': 'topics_completed',
    'streak_days': 'streak_days',
    'topics_per_day': 'topics_today',
    'forum_replies': 'forum_replies',
    'forum_participations': 'forum_participations',
}

# Binary time-of-day achievements: condition_type -> [start_hour, end_hour)
TIME_OF_DAY_WINDOWS: Dict[str, Tuple[int, int]] = {
    'night_owl': (0, 5),
    'early_riser': (5, 8),
}

# Forum activity type -> social metric it feeds
SOCIAL_ACTIVITY_METRICS: Dict[str, str] = {
    'reply': 'forum_replies',
    'participation': 'forum_participations',
}

# Action kind -> evaluator families run for it
ACTION_FAMILIES: Dict[str, Tuple[str, ...]] = {
    'topic_completed': ('progress', 'module', 'velocity'),
    'login': ('streak', 'horario'),
    'module_completed': ('module',),
    'forum_reply': ('social',),
}


class ModuleAchievementConfig:
    """Static mapping from module id to the achievement it unlocks.
    
    Keyed by module id, not display name, so renaming a module never
    changes which achievement it awards.
    """
    
    def __init__(
        self,
        module_achievements: Dict[str, int],
        all_modules_achievement_id: Optional[int] = None
    ):
        self.module_achievements = {str(k): int(v) for k, v in module_achievements.items()}
        self.all_modules_achievement_id = all_modules_achievement_id
    
    @classmethod
    def from_settings(cls) -> "ModuleAchievementConfig":
        settings = get_settings()
        return cls(settings.MODULE_ACHIEVEMENTS, settings.ALL_MODULES_ACHIEVEMENT_ID)
    
    def achievement_for(self, module_id: str) -> Optional[int]:
        return self.module_achievements.get(str(module_id))


# ============================================================================
# Default catalog (seeded by scripts/seed_achievements.py)
# ============================================================================

DEFAULT_ACHIEVEMENTS: List[Dict[str, Any]] = [
    # ============= PROGRESS =============
    {"id": 1, "name": "Primeiro Passo", "description": "Conclua o seu primeiro tópico",
     "icon": "👣", "category": "progress", "condition_type": "topics_completed",
     "condition_value": 1, "points": 10, "display_order": 1},
    {"id": 2, "name": "Aquecendo", "description": "Conclua 5 tópicos",
     "icon": "🔥", "category": "progress", "condition_type": "topics_completed",
     "condition_value": 5, "points": 20, "display_order": 2},
    {"id": 3, "name": "Dedicado", "description": "Conclua 10 tópicos",
     "icon": "📚", "category": "progress", "condition_type": "topics_completed",
     "condition_value": 10, "points": 30, "display_order": 3},
    {"id": 4, "name": "Meio Caminho", "description": "Conclua 15 tópicos",
     "icon": "🧭", "category": "progress", "condition_type": "topics_completed",
     "condition_value": 15, "points": 50, "display_order": 4},
    {"id": 5, "name": "Mestre dos Tópicos", "description": "Conclua 25 tópicos",
     "icon": "🎓", "category": "progress", "condition_type": "topics_completed",
     "condition_value": 25, "points": 100, "display_order": 5},
    
    # ============= MODULES =============
    {"id": 6, "name": "Base Forte", "description": "Conclua o módulo Lógica & Algoritmos",
     "icon": "🧠", "category": "module", "condition_type": "module_completed",
     "condition_value": 1, "points": 50, "display_order": 6},
    {"id": 7, "name": "C++ Warrior", "description": "Conclua o módulo C++ Fundamentos Fortes",
     "icon": "⚙️", "category": "module", "condition_type": "module_completed",
     "condition_value": 1, "points": 50, "display_order": 7},
    {"id": 8, "name": "Python Master", "description": "Conclua o módulo Python Aplicado",
     "icon": "🐍", "category": "module", "condition_type": "module_completed",
     "condition_value": 1, "points": 50, "display_order": 8},
    {"id": 9, "name": "Projetos Completos", "description": "Conclua o módulo Projetos Práticos",
     "icon": "🛠️", "category": "module", "condition_type": "module_completed",
     "condition_value": 1, "points": 50, "display_order": 9},
    {"id": 10, "name": "Full Stack Beginner", "description": "Conclua todos os módulos",
     "icon": "🏆", "category": "module", "condition_type": "all_modules_completed",
     "condition_value": 4, "points": 200, "display_order": 10},
    
    # ============= STREAKS =============
    {"id": 11, "name": "Fogo Jovem", "description": "Estude 3 dias seguidos",
     "icon": "🔥", "category": "streak", "condition_type": "streak_days",
     "condition_value": 3, "points": 20, "display_order": 11},
    {"id": 12, "name": "Determinado", "description": "Estude 7 dias seguidos",
     "icon": "💪", "category": "streak", "condition_type": "streak_days",
     "condition_value": 7, "points": 50, "display_order": 12},
    {"id": 13, "name": "Imparável", "description": "Estude 15 dias seguidos",
     "icon": "⚡", "category": "streak", "condition_type": "streak_days",
     "condition_value": 15, "points": 100, "display_order": 13},
    {"id": 14, "name": "Lenda da Consistência", "description": "Estude 30 dias seguidos",
     "icon": "👑", "category": "streak", "condition_type": "streak_days",
     "condition_value": 30, "points": 200, "display_order": 14},
    
    # ============= VELOCITY =============
    {"id": 15, "name": "Velocista", "description": "Conclua 5 tópicos num só dia",
     "icon": "🏃", "category": "velocity", "condition_type": "topics_per_day",
     "condition_value": 5, "points": 30, "display_order": 15},
    {"id": 16, "name": "Maratona de Código", "description": "Conclua 10 tópicos num só dia",
     "icon": "🚀", "category": "velocity", "condition_type": "topics_per_day",
     "condition_value": 10, "points": 60, "display_order": 16},
    
    # ============= TIME OF DAY =============
    {"id": 17, "name": "Coruja Noturna", "description": "Estude entre a meia-noite e as 5h",
     "icon": "🦉", "category": "horario", "condition_type": "night_owl",
     "condition_value": 1, "points": 15, "display_order": 17},
    {"id": 18, "name": "Madrugador", "description": "Estude entre as 5h e as 8h",
     "icon": "🌅", "category": "horario", "condition_type": "early_riser",
     "condition_value": 1, "points": 15, "display_order": 18},
    
    # ============= SOCIAL =============
    {"id": 19, "name": "Ajudante", "description": "Responda a 5 dúvidas no fórum",
     "icon": "🤝", "category": "social", "condition_type": "forum_replies",
     "condition_value": 5, "points": 30, "display_order": 19},
    {"id": 20, "name": "Comunidade Ativa", "description": "Participe 10 vezes no fórum",
     "icon": "💬", "category": "social", "condition_type": "forum_participations",
     "condition_value": 10, "points": 30, "display_order": 20},
]
