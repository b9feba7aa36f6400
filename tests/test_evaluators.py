"""
Tests for the evaluator families (DynamoDB with moto, Content Service mocked)
"""
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch, AsyncMock

from achievement_service import dynamo_achievements
from achievement_service.logic import evaluators
from achievement_service.logic.achievement_service import load_catalog
from achievement_service.logic.catalog import ModuleAchievementConfig, DEFAULT_ACHIEVEMENTS
from conftest import put_completion, put_definition, put_forum_activity


NOW = datetime(2025, 3, 10, 14, 0, tzinfo=timezone.utc)

MODULES = [
    {'id': '1', 'name': 'Lógica', 'active': True, 'topics': [{'id': '1', 'active': True}, {'id': '2', 'active': True}]},
    {'id': '2', 'name': 'C++', 'active': True, 'topics': [{'id': '3', 'active': True}]},
    {'id': '3', 'name': 'Python', 'active': True, 'topics': [{'id': '4', 'active': True}]},
    {'id': '4', 'name': 'Projetos', 'active': True, 'topics': [{'id': '5', 'active': True}]},
]


def make_context(user_id="u1", now=NOW):
    return evaluators.EvaluationContext(
        user_id,
        load_catalog(),
        now=now,
        module_config=ModuleAchievementConfig({"1": 6, "2": 7, "3": 8, "4": 9}, 10),
        tz_name="UTC"
    )


def earned_ids(user_id="u1"):
    return {
        row['achievement_id']
        for row in dynamo_achievements.get_user_progress(user_id)
        if row.get('earned_at')
    }


def complete_topics_today(table, count, user_id="u1", now=NOW):
    for i in range(count):
        put_completion(table, user_id, str(100 + i), (now - timedelta(minutes=i)).isoformat())


class TestProgress:
    
    @pytest.mark.asyncio
    async def test_first_topic(self, seeded_table):
        """One completed topic earns the first progress achievement"""
        complete_topics_today(seeded_table, 1)
        
        results = await evaluators.evaluate_progress(make_context())
        
        assert [r['achievement_id'] for r in results] == [1]
        assert results[0]['newly_earned'] is True
    
    @pytest.mark.asyncio
    async def test_all_met_thresholds_awarded(self, seeded_table):
        """Every met threshold is awarded"""
        complete_topics_today(seeded_table, 10)
        
        await evaluators.evaluate_progress(make_context())
        
        assert earned_ids() == {1, 2, 3}
    
    @pytest.mark.asyncio
    async def test_no_completions_no_rows(self, seeded_table):
        """No completions writes no rows"""
        results = await evaluators.evaluate_progress(make_context())
        
        assert results == []
        assert dynamo_achievements.get_user_progress("u1") == []
    
    @pytest.mark.asyncio
    async def test_inactive_definition_excluded(self, seeded_table):
        """Inactive definitions are never awarded"""
        put_definition(seeded_table, DEFAULT_ACHIEVEMENTS[0], active=False)
        complete_topics_today(seeded_table, 1)
        
        results = await evaluators.evaluate_progress(make_context())
        
        assert results == []


class TestVelocity:
    
    @pytest.mark.asyncio
    async def test_five_today(self, seeded_table):
        """Five topics today earns the first tier"""
        complete_topics_today(seeded_table, 5)
        
        await evaluators.evaluate_velocity(make_context())
        
        assert earned_ids() == {15}
    
    @pytest.mark.asyncio
    async def test_ten_today(self, seeded_table):
        """Ten topics today earns both tiers"""
        complete_topics_today(seeded_table, 10)
        
        await evaluators.evaluate_velocity(make_context())
        
        assert earned_ids() == {15, 16}
    
    @pytest.mark.asyncio
    async def test_yesterday_does_not_count(self, seeded_table):
        """Yesterday's topics do not count"""
        complete_topics_today(seeded_table, 5, now=NOW - timedelta(days=1))
        
        await evaluators.evaluate_velocity(make_context())
        
        assert earned_ids() == set()


class TestStreak:
    
    @pytest.mark.asyncio
    async def test_three_day_streak(self, seeded_table):
        """Three consecutive days ending today"""
        for offset in range(3):
            put_completion(seeded_table, "u1", str(offset), (NOW - timedelta(days=offset)).isoformat())
        
        await evaluators.evaluate_streak(make_context())
        
        assert earned_ids() == {11}
    
    @pytest.mark.asyncio
    async def test_streak_anchored_on_yesterday(self, seeded_table):
        """Streak still counts when today has no activity"""
        for offset in range(1, 4):
            put_completion(seeded_table, "u1", str(offset), (NOW - timedelta(days=offset)).isoformat())
        
        await evaluators.evaluate_streak(make_context())
        
        assert earned_ids() == {11}
    
    @pytest.mark.asyncio
    async def test_broken_streak(self, seeded_table):
        """Gap before yesterday means no streak"""
        for offset in (2, 3, 4):
            put_completion(seeded_table, "u1", str(offset), (NOW - timedelta(days=offset)).isoformat())
        
        results = await evaluators.evaluate_streak(make_context())
        
        assert results == []


class TestModules:
    
    @pytest.mark.asyncio
    async def test_single_module(self, seeded_table):
        """Completing one module earns its mapped achievement"""
        put_completion(seeded_table, "u1", "1", NOW.isoformat())
        put_completion(seeded_table, "u1", "2", NOW.isoformat())
        
        with patch('achievement_service.content_client.get_modules', new=AsyncMock(return_value=MODULES)):
            results = await evaluators.evaluate_modules(make_context())
        
        assert [r['achievement_id'] for r in results] == [6]
        assert results[0]['progress_current'] == 1
        assert results[0]['progress_target'] == 1
    
    @pytest.mark.asyncio
    async def test_all_modules(self, seeded_table):
        """Completing every module earns all five"""
        for topic_id in ('1', '2', '3', '4', '5'):
            put_completion(seeded_table, "u1", topic_id, NOW.isoformat())
        
        with patch('achievement_service.content_client.get_modules', new=AsyncMock(return_value=MODULES)):
            await evaluators.evaluate_modules(make_context())
        
        assert earned_ids() == {6, 7, 8, 9, 10}
        all_modules = dynamo_achievements.get_progress("u1", 10)
        assert all_modules['progress_current'] == 4
        assert all_modules['progress_target'] == 4
    
    @pytest.mark.asyncio
    async def test_module_without_topics_excluded_from_all_modules(self, seeded_table):
        """Empty modules are left out of the all-modules count"""
        modules = MODULES + [{'id': '5', 'name': 'Vazio', 'active': True, 'topics': []}]
        for topic_id in ('1', '2', '3', '4', '5'):
            put_completion(seeded_table, "u1", topic_id, NOW.isoformat())
        
        with patch('achievement_service.content_client.get_modules', new=AsyncMock(return_value=modules)):
            await evaluators.evaluate_modules(make_context())
        
        assert 10 in earned_ids()
    
    @pytest.mark.asyncio
    async def test_unmapped_module_awards_nothing(self, seeded_table):
        """Module without a mapping awards nothing"""
        modules = [{'id': '42', 'name': 'Extra', 'active': True, 'topics': [{'id': '1', 'active': True}]}]
        put_completion(seeded_table, "u1", "1", NOW.isoformat())
        ctx = make_context()
        ctx.module_config = ModuleAchievementConfig({"1": 6})
        
        with patch('achievement_service.content_client.get_modules', new=AsyncMock(return_value=modules)):
            results = await evaluators.evaluate_modules(ctx)
        
        assert results == []


class TestTimeOfDay:
    
    @pytest.mark.asyncio
    async def test_night_owl(self, seeded_table):
        """3am earns Coruja Noturna"""
        ctx = make_context(now=datetime(2025, 3, 10, 3, 15, tzinfo=timezone.utc))
        
        await evaluators.evaluate_time_of_day(ctx)
        
        assert earned_ids() == {17}
    
    @pytest.mark.asyncio
    async def test_early_riser(self, seeded_table):
        """6am earns Madrugador"""
        ctx = make_context(now=datetime(2025, 3, 10, 6, 0, tzinfo=timezone.utc))
        
        await evaluators.evaluate_time_of_day(ctx)
        
        assert earned_ids() == {18}
    
    @pytest.mark.asyncio
    async def test_afternoon_awards_nothing(self, seeded_table):
        """Afternoon earns nothing"""
        results = await evaluators.evaluate_time_of_day(make_context())
        
        assert results == []


class TestSocial:
    
    @pytest.mark.asyncio
    async def test_replies_and_participations_are_independent(self, seeded_table):
        """Replies and participations are counted separately"""
        for i in range(5):
            put_forum_activity(seeded_table, "u1", f"r{i}", "reply")
        for i in range(3):
            put_forum_activity(seeded_table, "u1", f"p{i}", "participation")
        
        await evaluators.evaluate_social(make_context())
        
        assert earned_ids() == {19}
