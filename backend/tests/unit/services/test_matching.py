"""
Unit Tests for the supervisor matching engine
"""
from types import SimpleNamespace

from thesishub.services.matching import (
    DEFAULT_NEUTRAL_SCORE, overlaps, is_at_capacity, rank_teachers, score_teacher,
)


def teacher(name, field=None, topics=(), current=0, maximum=5):
    return SimpleNamespace(
        name=name,
        research_field=field,
        accepted_topics=list(topics),
        current_students_count=current,
        max_students=maximum,
    )


def proposal(title='', field=None, keywords=()):
    return SimpleNamespace(title=title, field=field, keywords=list(keywords))


class TestOverlaps:

    def test_containment_either_way_ignoring_case(self):
        assert overlaps('Machine Learning', 'machine learning for vision')
        assert overlaps('deep LEARNING', 'Learning')

    def test_empty_values_never_match(self):
        assert not overlaps('', 'anything')
        assert not overlaps(None, 'anything')
        assert not overlaps('   ', 'anything')

    def test_unrelated(self):
        assert not overlaps('Databases', 'Robotics')


class TestCapacity:

    def test_full_teacher(self):
        assert is_at_capacity(teacher('a', current=5, maximum=5))

    def test_zero_slots_is_full(self):
        assert is_at_capacity(teacher('a', current=0, maximum=0))

    def test_free_slot(self):
        assert not is_at_capacity(teacher('a', current=4, maximum=5))


class TestScoreTeacher:

    def test_field_match_only(self):
        t = teacher('a', field='Artificial Intelligence')
        p = proposal(field='artificial intelligence')
        assert score_teacher(t, p) == 40

    def test_keyword_and_title_topic_points(self):
        t = teacher('a', topics=['NLP'])
        p = proposal(title='An NLP pipeline for legal text', keywords=['nlp'])
        # 20 for the keyword, 15 for the topic appearing in the title
        assert score_teacher(t, p) == 35

    def test_each_topic_scores_once_per_rule(self):
        t = teacher('a', topics=['vision'])
        p = proposal(keywords=['computer vision', 'vision transformers'])
        assert score_teacher(t, p) == 20

    def test_capacity_penalty_is_clamped_at_zero(self):
        t = teacher('a', current=3, maximum=3)
        assert score_teacher(t, proposal(title='Anything')) == 0

    def test_penalty_applied_after_bonuses(self):
        t = teacher('a', field='Data Science', topics=['graphs'], current=2, maximum=2)
        p = proposal(title='Graphs at scale', field='data science', keywords=['graphs'])
        assert score_teacher(t, p) == 40 + 20 + 15 - 30

    def test_score_never_exceeds_100(self):
        t = teacher('a', field='AI', topics=['ai', 'learning', 'robots'])
        p = proposal(title='ai learning robots', field='AI', keywords=['ai', 'learning', 'robots'])
        assert score_teacher(t, p) == 100


class TestRankTeachers:

    def test_no_proposal_gives_neutral_score_in_input_order(self):
        teachers = [teacher('a'), teacher('b'), teacher('c')]
        ranked = rank_teachers(teachers, None)
        assert [m.teacher.name for m in ranked] == ['a', 'b', 'c']
        assert all(m.score == DEFAULT_NEUTRAL_SCORE for m in ranked)

    def test_custom_neutral_score(self):
        ranked = rank_teachers([teacher('a')], None, neutral_score=70)
        assert ranked[0].score == 70

    def test_sorted_descending_and_stable(self):
        teachers = [
            teacher('low'),
            teacher('tie-1', field='Security'),
            teacher('high', field='Security', topics=['malware']),
            teacher('tie-2', field='security'),
        ]
        p = proposal(title='Malware detection', field='Security', keywords=['malware'])
        ranked = rank_teachers(teachers, p)
        assert [m.teacher.name for m in ranked] == ['high', 'tie-1', 'tie-2', 'low']
        assert [m.score for m in ranked] == [75, 40, 40, 0]

    def test_same_input_same_output(self):
        teachers = [teacher('a', field='x'), teacher('b', field='y')]
        p = proposal(field='y')
        assert rank_teachers(teachers, p) == rank_teachers(teachers, p)
