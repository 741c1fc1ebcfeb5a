# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Default achievement catalog.

Each template pairs a rule with the display data used when seeding the
achievements table. The ``rule_key`` of a seeded row is the rule's key,
so titles and descriptions can be edited without changing behavior.
Row ids are UUIDs derived from the rule key, so reseeding is stable.

Usage:
    from src.domains.gamification.defaults import (
        DEFAULT_ACHIEVEMENTS,
        default_achievement_catalog,
    )

    definitions = default_achievement_catalog()
"""

from dataclasses import dataclass
from uuid import UUID, uuid5

from src.domains.analytics.models import AchievementDefinition
from src.domains.gamification.rules import (
    AchievementRule,
    AllButRule,
    GradeCompletionRule,
    GradeMasteryRule,
    MetricRule,
    UnlockCountRule,
    at_least,
    completed_all_subjects,
    completed_all_topics,
    excellent_average,
    is_true,
    lessons_in_all_subjects,
)

GRADES = (8, 9, 10, 11, 12)

ACHIEVEMENT_NAMESPACE = UUID("5b0c6f3e-2d4a-4c1e-9a7f-3e8d2b1c6a40")


def achievement_id(rule_key: str) -> str:
    """Get the stable catalog id of a default achievement."""
    return str(uuid5(ACHIEVEMENT_NAMESPACE, rule_key))


@dataclass(frozen=True)
class AchievementTemplate:
    """A default achievement: its rule plus display data."""

    rule: AchievementRule
    title: str
    description: str
    icon: str

    @property
    def rule_key(self) -> str:
        return self.rule.key

    def to_definition(self) -> AchievementDefinition:
        """Build a catalog definition with an id derived from the rule key."""
        return AchievementDefinition(
            id=achievement_id(self.rule_key),
            title=self.title,
            description=self.description,
            rule_key=self.rule_key,
            icon=self.icon,
        )


def _metric(key: str, field: str, minimum: float, title: str, description: str, icon: str) -> AchievementTemplate:
    return AchievementTemplate(MetricRule(key, at_least(field, minimum)), title, description, icon)


def _flag(key: str, field: str, title: str, description: str, icon: str) -> AchievementTemplate:
    return AchievementTemplate(MetricRule(key, is_true(field)), title, description, icon)


DEFAULT_ACHIEVEMENTS: tuple[AchievementTemplate, ...] = (
    # Lessons
    _metric("first_steps", "completed_lesson_count", 1, "First Steps", "Complete your first lesson", "🎯"),
    _metric("lesson_learner", "completed_lesson_count", 10, "Lesson Learner", "Complete 10 lessons", "📚"),
    _metric("lesson_master", "completed_lesson_count", 50, "Lesson Master", "Complete 50 lessons", "📖"),
    _metric("lesson_legend", "completed_lesson_count", 100, "Lesson Legend", "Complete 100 lessons", "📕"),
    _metric("lesson_hero", "completed_lesson_count", 200, "Lesson Hero", "Complete 200 lessons", "📗"),
    _metric("lesson_champion", "completed_lesson_count", 300, "Lesson Champion", "Complete 300 lessons", "📘"),
    _metric("lesson_titan", "completed_lesson_count", 400, "Lesson Titan", "Complete 400 lessons", "📙"),
    _metric("lesson_god", "completed_lesson_count", 500, "Lesson God", "Complete 500 lessons", "📔"),
    # Topics and subjects
    _metric("topic_explorer", "completed_topic_count", 1, "Topic Explorer", "Complete your first topic", "🗺️"),
    _metric("topic_champion", "completed_topic_count", 5, "Topic Champion", "Complete 5 topics", "⭐"),
    _metric("topic_master", "completed_topic_count", 10, "Topic Master", "Complete 10 topics", "🌟"),
    _metric("topic_expert", "completed_topic_count", 15, "Topic Expert", "Complete 15 topics", "⭐"),
    _metric("topic_grandmaster", "completed_topic_count", 20, "Topic Grandmaster", "Complete 20 topics", "🌟"),
    _metric(
        "subject_specialist", "completed_subject_count", 1,
        "Subject Specialist", "Complete all topics in a subject", "🎓",
    ),
    _metric(
        "subject_master", "completed_subject_count", 2,
        "Subject Master", "Complete all topics in 2 subjects", "🎓",
    ),
    AchievementTemplate(
        MetricRule("ultimate_scholar", completed_all_subjects),
        "Ultimate Scholar", "Complete all topics in all subjects", "👑",
    ),
    # Quizzes
    _metric("quiz_starter", "quiz_attempt_count", 1, "Quiz Starter", "Complete your first quiz", "📝"),
    _metric("quiz_warrior", "quiz_attempt_count", 25, "Quiz Warrior", "Complete 25 quizzes", "⚔️"),
    _metric("quiz_titan", "quiz_attempt_count", 50, "Quiz Titan", "Complete 50 quizzes", "🔱"),
    _metric("quiz_god", "quiz_attempt_count", 100, "Quiz God", "Complete 100 quizzes", "⚡"),
    _metric("perfect_score", "perfect_score_count", 1, "Perfect Score", "Score 100% on a quiz", "💯"),
    _metric("quiz_perfectionist", "perfect_score_count", 10, "Quiz Perfectionist", "Score 100% on 10 quizzes", "⭐"),
    _metric("quiz_ace", "high_score_count", 5, "Quiz Ace", "Score 90% or higher on 5 quizzes", "🎯"),
    _metric("quiz_master", "high_score_count", 10, "Quiz Master", "Score 90% or higher on 10 quizzes", "🏆"),
    _metric("quiz_champion", "high_score_count", 20, "Quiz Champion", "Score 90% or higher on 20 quizzes", "👑"),
    _metric("quiz_legend", "high_score_count", 50, "Quiz Legend", "Score 90% or higher on 50 quizzes", "💎"),
    _metric(
        "academic_excellence", "excellent_score_count", 20,
        "Academic Excellence", "Score 95%+ on 20 quizzes", "🎖️",
    ),
    _metric(
        "assessment_expert", "assessment_attempts", 1,
        "Assessment Expert", "Complete an assessment quiz", "📊",
    ),
    _flag(
        "perfect_assessment", "assessment_has_perfect",
        "Perfect Assessment", "Score 100% on an assessment quiz", "💎",
    ),
    _metric(
        "assessment_master", "assessment_high_score_count", 5,
        "Assessment Master", "Score 90%+ on 5 assessment quizzes", "📊",
    ),
    _metric(
        "perfect_streak", "longest_perfect_run", 5,
        "Perfect Streak", "Score 100% on 5 consecutive quizzes", "💯",
    ),
    _metric(
        "straight_a_student", "longest_high_score_run", 10,
        "Straight A Student", "Score 90%+ on 10 consecutive quizzes", "📊",
    ),
    AchievementTemplate(
        MetricRule("excellence_award", excellent_average),
        "Excellence Award", "Maintain 90%+ average across all quizzes", "🏅",
    ),
    _flag("perfect_week", "all_perfect_last_7_days", "Perfect Week", "Score 100% on all quizzes in a week", "💯"),
    _flag("perfect_month", "all_perfect_last_30_days", "Perfect Month", "Score 100% on all quizzes in a month", "⭐"),
    _metric(
        "quiz_marathon", "quiz_attempts_last_7_days", 10,
        "Quiz Marathon", "Complete 10 quizzes in one week", "🏃",
    ),
    _metric("quick_quizzer", "quiz_attempts_today", 3, "Quick Quizzer", "Complete 3 quizzes in one day", "🎯"),
    # Streaks
    _metric("getting_started", "study_streak_days", 1, "Getting Started", "Study for 1 day in a row", "🌱"),
    _metric("week_warrior", "study_streak_days", 7, "Week Warrior", "Study for 7 days in a row", "🔥"),
    _metric("fortnight_fighter", "study_streak_days", 14, "Fortnight Fighter", "Study for 14 days in a row", "⚡"),
    _metric("monthly_master", "study_streak_days", 30, "Monthly Master", "Study for 30 days in a row", "💪"),
    _metric("consistency_king", "study_streak_days", 60, "Consistency King", "Study for 60 days in a row", "👑"),
    _metric("streak_champion", "study_streak_days", 75, "Streak Champion", "Maintain a 75-day streak", "⚡"),
    _metric("dedication_deity", "study_streak_days", 100, "Dedication Deity", "Study for 100 days in a row", "🌟"),
    _metric("streak_legend", "study_streak_days", 150, "Streak Legend", "Maintain a 150-day streak", "💪"),
    _metric("unstoppable", "study_streak_days", 180, "Unstoppable", "Study for 180 days in a row", "🚀"),
    _metric("streak_god", "study_streak_days", 200, "Streak God", "Maintain a 200-day streak", "👑"),
    _metric("streak_immortal", "study_streak_days", 300, "Streak Immortal", "Maintain a 300-day streak", "🏆"),
    _metric("year_warrior", "study_streak_days", 365, "Year Warrior", "Study for 365 days in a row", "🏅"),
    # Study time
    _metric("time_keeper", "total_study_hours", 1, "Time Keeper", "Study for 1 hour total", "⏰"),
    _metric("time_starter", "total_study_hours", 1, "Time Starter", "Study for 1 hour total", "⏰"),
    _metric("time_master", "total_study_hours", 10, "Time Master", "Study for 10 hours total", "⏱️"),
    _metric("time_legend", "total_study_hours", 50, "Time Legend", "Study for 50 hours total", "🕐"),
    _metric("time_champion", "total_study_hours", 100, "Time Champion", "Study for 100 hours total", "🕰️"),
    _metric("time_titan", "total_study_hours", 200, "Time Titan", "Study for 200 hours total", "⏳"),
    _metric("time_immortal", "total_study_hours", 300, "Time Immortal", "Study for 300 hours total", "⏰"),
    _metric("time_deity", "total_study_hours", 500, "Time Deity", "Study for 500 hours total", "🕐"),
    _metric("marathon_learner", "today_total_minutes", 120, "Marathon Learner", "Study for 2 hours in one day", "🏃"),
    _metric("study_marathon", "today_total_minutes", 180, "Study Marathon", "Study for 3 hours in one day", "🏃"),
    _metric("study_champion", "today_total_minutes", 300, "Study Champion", "Study for 5 hours in one day", "💪"),
    _flag("night_owl", "has_night_study", "Night Owl", "Study after 8 PM", "🦉"),
    _flag("early_bird", "has_early_study", "Early Bird", "Study before 8 AM", "🐦"),
    _flag("weekend_warrior", "has_both_weekend_days", "Weekend Warrior", "Study on both Saturday and Sunday", "🎮"),
    _metric(
        "weekend_master", "recent_weekends_studied", 4,
        "Weekend Master", "Study every weekend for a month", "🎮",
    ),
    # Progress
    _flag("progress_maker", "has_progress_quarter", "Progress Maker", "Complete 25% of a topic", "📈"),
    _flag("halfway_hero", "has_progress_half", "Halfway Hero", "Complete 50% of a topic", "🎯"),
    _flag("almost_there", "has_progress_three_quarters", "Almost There", "Complete 75% of a topic", "🎪"),
    _metric("completionist", "full_progress_topic_count", 5, "Completionist", "Complete 5 topics at 100%", "✅"),
    _metric("perfectionist", "full_progress_topic_count", 10, "Perfectionist", "Complete 10 topics at 100%", "💎"),
    _metric(
        "master_completer", "full_progress_topic_count", 20,
        "Master Completer", "Complete 20 topics at 100%", "🏆",
    ),
    _metric(
        "ultimate_completer", "full_progress_topic_count", 30,
        "Ultimate Completer", "Complete 30 topics at 100%", "💎",
    ),
    _metric(
        "progress_master", "near_complete_topic_count", 10,
        "Progress Master", "Complete 75% of 10 topics", "🎯",
    ),
    AchievementTemplate(
        MetricRule("total_completion", completed_all_topics),
        "Total Completion", "Complete 100% of all available topics", "✅",
    ),
    # Pace
    _metric("speed_learner", "lessons_completed_today", 5, "Speed Learner", "Complete 5 lessons in one day", "⚡"),
    _metric("rapid_reader", "lessons_completed_today", 10, "Rapid Reader", "Complete 10 lessons in one day", "🚀"),
    _metric("lightning_fast", "lessons_completed_today", 15, "Lightning Fast", "Complete 15 lessons in one day", "⚡"),
    _metric("speed_demon", "lessons_completed_today", 20, "Speed Demon", "Complete 20 lessons in one day", "🚀"),
    _metric("fast_finisher", "topics_completed_today", 1, "Fast Finisher", "Complete a topic in one day", "🏁"),
    _metric("speed_champion", "topics_completed_today", 2, "Speed Champion", "Complete 2 topics in one day", "🏁"),
    # Habits
    _metric("comeback_kid", "return_gap_days", 7, "Comeback Kid", "Return after 7 days away", "🔄"),
    _metric("comeback_champion", "return_gap_days", 30, "Comeback Champion", "Return after 30 days away", "🔄"),
    _metric(
        "multi_tasker", "subjects_studied_today", 2,
        "Multi-Tasker", "Study multiple subjects in one day", "🎭",
    ),
    _metric(
        "multi_subject_master", "subjects_studied_today", 3,
        "Multi-Subject Master", "Study 3 subjects in one day", "🎭",
    ),
    _metric("explorer", "started_topic_count", 5, "Explorer", "Start lessons in 5 different topics", "🧭"),
    AchievementTemplate(
        MetricRule("scholar", lessons_in_all_subjects),
        "Scholar", "Complete lessons in all subjects", "🎓",
    ),
    # Grades
    *(
        AchievementTemplate(
            GradeCompletionRule(f"grade_{grade}_graduate", grade),
            f"Grade {grade} Graduate", f"Complete all Grade {grade} topics", "🎓",
        )
        for grade in GRADES
    ),
    *(
        AchievementTemplate(
            GradeMasteryRule(f"grade_{grade}_master", grade),
            f"Grade {grade} Master", f"Score 90%+ on all Grade {grade} quizzes", "🎓",
        )
        for grade in GRADES
    ),
    # Meta
    AchievementTemplate(UnlockCountRule("all_star", 10), "All-Star", "Unlock 10 achievements", "⭐"),
    AchievementTemplate(UnlockCountRule("hall_of_fame", 25), "Hall of Fame", "Unlock 25 achievements", "🏛️"),
    AchievementTemplate(
        UnlockCountRule("achievement_master", 30), "Achievement Master", "Unlock 30 achievements", "🏛️",
    ),
    AchievementTemplate(
        UnlockCountRule("achievement_legend", 40), "Achievement Legend", "Unlock 40 achievements", "👑",
    ),
    AchievementTemplate(AllButRule("legendary"), "Legendary", "Unlock all achievements", "👑"),
)


def default_rules() -> list[AchievementRule]:
    """Get the rules of the default catalog."""
    return [template.rule for template in DEFAULT_ACHIEVEMENTS]


def default_achievement_catalog() -> list[AchievementDefinition]:
    """Get the default catalog as achievement definitions.

    Ids are UUIDs derived from each rule key, so the result can seed
    the achievements table and be seeded again with the same ids.
    """
    return [template.to_definition() for template in DEFAULT_ACHIEVEMENTS]
