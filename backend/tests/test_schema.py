"""
Pruebas de normalización de expresiones y etiquetas de mood.
"""

import pytest

from emomusic.core.emotion.schema import (
    EXPRESSION_CATEGORIES,
    MoodLabel,
    get_all_moods,
    normalize_expression,
    normalize_expression_scores,
    parse_mood,
)
from emomusic.core.errors import InvalidInputError


def test_deepface_labels_are_mapped():
    assert normalize_expression("fear") == "fearful"
    assert normalize_expression("disgust") == "disgusted"
    assert normalize_expression("surprise") == "surprised"
    assert normalize_expression(" Happy ") == "happy"
    assert normalize_expression("confused") is None
    assert normalize_expression("") is None


def test_percentages_are_rescaled_to_fixed_record():
    raw = {'happy': 90.0, 'fear': 6.0, 'surprise': 4.0, 'gender': 50.0}

    scores = normalize_expression_scores(raw)

    assert list(scores) == EXPRESSION_CATEGORIES
    assert scores['happy'] == pytest.approx(0.9)
    assert scores['fearful'] == pytest.approx(0.06)
    assert scores['surprised'] == pytest.approx(0.04)
    assert scores['neutral'] == 0.0
    assert 'gender' not in scores


def test_unit_scores_are_kept_and_clamped():
    scores = normalize_expression_scores({'sad': 0.4, 'angry': -0.1}, scale=1.0)

    assert scores['sad'] == pytest.approx(0.4)
    assert scores['angry'] == 0.0


def test_parse_mood():
    assert parse_mood("Happy") == MoodLabel.HAPPY
    assert parse_mood(MoodLabel.SAD) is MoodLabel.SAD

    with pytest.raises(InvalidInputError):
        parse_mood("furious")
    with pytest.raises(InvalidInputError):
        parse_mood(None)


def test_mood_set_is_closed():
    assert get_all_moods() == ['sad', 'neutral', 'happy', 'energetic']
