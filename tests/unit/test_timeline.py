"""
Unit tests for timeline construction.

Tests ProceduralBlock flattening and randomization and Timeline.build.
"""

from collections import Counter

import pytest

from conftest import create_fixation, create_response_trial
from core.errors import ConstructionError
from core.execution.block import ProceduralBlock
from core.execution.randomization import make_rng, sample_without_replacement, shuffle
from core.execution.timeline import Timeline
from core.execution.trials import HtmlKeyboardResponse, RandomDotKinematogram


def labelled(label, **tags):
    """Trial identified by its 'label' data tag."""
    data = {'label': label}
    data.update(tags)
    return HtmlKeyboardResponse(stimulus=f'<p>{label}</p>', data=data)


def labels(plan):
    return [unit.data['label'] for unit in plan]


# ==================== RANDOMIZATION HELPERS ====================

@pytest.mark.unit
def test_shuffle_returns_permuted_copy():
    items = list(range(10))
    permuted = shuffle(items, make_rng(3))

    assert sorted(permuted) == items
    assert items == list(range(10))


@pytest.mark.unit
def test_shuffle_reproducible_with_seed():
    assert shuffle(range(20), make_rng(42)) == shuffle(range(20), make_rng(42))


@pytest.mark.unit
def test_sample_without_replacement():
    sample = sample_without_replacement([250, 500, 750, 1000], 3, make_rng(1))

    assert len(sample) == 3
    assert len(set(sample)) == 3
    assert set(sample) <= {250, 500, 750, 1000}

    with pytest.raises(ValueError):
        sample_without_replacement([1, 2], 3)


# ==================== BLOCK TESTS ====================

@pytest.mark.unit
def test_block_creation():
    block = ProceduralBlock("practice")

    assert block.name == "practice"
    assert block.timeline == []
    assert block.repetitions == 1
    assert block.randomize_order is False


@pytest.mark.unit
def test_block_add_and_remove_units():
    block = ProceduralBlock("practice")
    first, second, third = labelled('a'), labelled('b'), labelled('c')

    block.add_unit(first)
    block.add_unit(third)
    block.add_unit(second, index=1)
    assert block.timeline == [first, second, third]

    block.remove_unit(0)
    assert block.timeline == [second, third]


@pytest.mark.unit
def test_block_unit_count_with_repetitions():
    """Flattened count is the member count times repetitions."""
    inner = ProceduralBlock("inner", timeline=[labelled('x'), labelled('y')], repetitions=2)
    block = ProceduralBlock("outer", timeline=[labelled('a'), inner], repetitions=3)

    assert inner.get_unit_count() == 4
    assert block.get_unit_count() == (1 + 4) * 3
    assert len(block.flatten(make_rng(0))) == 15


@pytest.mark.unit
def test_block_flatten_keeps_declaration_order():
    block = ProceduralBlock("fixed", timeline=[labelled('a'), labelled('b'), labelled('c')], repetitions=2)

    assert labels(block.flatten()) == ['a', 'b', 'c', 'a', 'b', 'c']


@pytest.mark.unit
def test_block_flatten_tags_block_path():
    inner = ProceduralBlock("item_1", timeline=[labelled('x')])
    block = ProceduralBlock("test_procedure", timeline=[labelled('a'), inner])

    plan = block.flatten()
    assert plan[0].data['block'] == 'test_procedure'
    assert plan[1].data['block'] == 'test_procedure/item_1'


@pytest.mark.unit
def test_block_flatten_does_not_mutate_members():
    trial = labelled('a')
    ProceduralBlock("fixed", timeline=[trial]).flatten()

    assert 'block' not in trial.data


@pytest.mark.unit
def test_randomized_block_preserves_multiset():
    """Shuffling permutes members without adding or dropping any."""
    members = [labelled(str(i)) for i in range(8)]
    block = ProceduralBlock("shuffled", timeline=members, randomize_order=True)

    orders = set()
    for seed in range(20):
        plan = labels(block.flatten(make_rng(seed)))
        assert sorted(plan) == sorted(str(i) for i in range(8))
        orders.add(tuple(plan))

    assert len(orders) > 1


@pytest.mark.unit
def test_randomized_block_reshuffles_each_repetition():
    """With repetitions, each pass holds the full member set."""
    members = [labelled(str(i)) for i in range(6)]
    block = ProceduralBlock("shuffled", timeline=members, repetitions=3, randomize_order=True)

    plan = labels(block.flatten(make_rng(7)))
    for rep in range(3):
        assert sorted(plan[rep * 6:(rep + 1) * 6]) == [str(i) for i in range(6)]


@pytest.mark.unit
def test_randomization_never_crosses_block_boundary():
    """Nested groups stay contiguous and in their internal order."""
    groups = [
        ProceduralBlock(f"item_{i}", timeline=[labelled(f"fix{i}"), labelled(f"cue{i}"), labelled(f"rdk{i}")])
        for i in range(5)
    ]
    block = ProceduralBlock("test_procedure", timeline=groups, randomize_order=True)

    for seed in range(10):
        plan = labels(block.flatten(make_rng(seed)))
        for start in range(0, len(plan), 3):
            i = plan[start][len('fix'):]
            assert plan[start:start + 3] == [f"fix{i}", f"cue{i}", f"rdk{i}"]


@pytest.mark.unit
def test_outer_units_never_shuffled_into_block():
    """Units around a randomized block keep their positions."""
    timeline = Timeline(seed=5)
    timeline.add_unit(labelled('welcome'))
    timeline.add_unit(ProceduralBlock("shuffled", timeline=[labelled(str(i)) for i in range(5)],
                                      randomize_order=True))
    timeline.add_unit(labelled('goodbye'))

    plan = labels(timeline.build())
    assert plan[0] == 'welcome'
    assert plan[-1] == 'goodbye'
    assert sorted(plan[1:-1]) == [str(i) for i in range(5)]


@pytest.mark.unit
def test_block_validation_empty():
    block = ProceduralBlock("empty")

    errors = block.validate()
    assert any('no member units' in e for e in errors)


@pytest.mark.unit
@pytest.mark.parametrize("repetitions", [0, -1, 1.5])
def test_block_validation_repetitions(repetitions):
    block = ProceduralBlock("bad", timeline=[labelled('a')], repetitions=repetitions)

    assert any('repetitions' in e for e in block.validate())


@pytest.mark.unit
def test_block_validation_reports_member_errors():
    block = ProceduralBlock("rdk", timeline=[RandomDotKinematogram(number_of_apertures=2, dot_color=['blue'])])

    errors = block.validate()
    assert len(errors) == 1
    assert 'dot_color' in errors[0]


# ==================== TIMELINE TESTS ====================

@pytest.mark.unit
def test_timeline_creation():
    timeline = Timeline(name="dot_motion")

    assert timeline.name == "dot_motion"
    assert timeline.units == []
    assert timeline.get_total_units() == 0


@pytest.mark.unit
def test_timeline_reorder_unit():
    timeline = Timeline()
    a, b, c = labelled('a'), labelled('b'), labelled('c')
    for unit in (a, b, c):
        timeline.add_unit(unit)

    timeline.reorder_unit(0, 2)

    assert timeline.units == [b, c, a]


@pytest.mark.unit
def test_timeline_build_count_matches_total():
    timeline = Timeline()
    timeline.add_unit(labelled('welcome'))
    timeline.add_unit(ProceduralBlock("block", timeline=[labelled('x'), labelled('y')], repetitions=4))

    assert timeline.get_total_units() == 9
    assert len(timeline.build()) == 9


@pytest.mark.unit
def test_empty_timeline_raises():
    with pytest.raises(ConstructionError):
        Timeline().build()


@pytest.mark.unit
def test_empty_block_raises_construction_error():
    timeline = Timeline()
    timeline.add_unit(ProceduralBlock("empty"))

    with pytest.raises(ConstructionError) as exc_info:
        timeline.build()
    assert any('no member units' in e for e in exc_info.value.errors)


@pytest.mark.unit
def test_malformed_rdk_raises_construction_error():
    timeline = Timeline()
    timeline.add_unit(RandomDotKinematogram(number_of_apertures=3, move_distance=[0, 1]))

    with pytest.raises(ConstructionError) as exc_info:
        timeline.build()
    assert 'move_distance' in str(exc_info.value)


@pytest.mark.unit
def test_timeline_build_reproducible_with_seed():
    def make():
        timeline = Timeline(seed=11)
        timeline.add_unit(ProceduralBlock("shuffled", timeline=[labelled(str(i)) for i in range(10)],
                                          randomize_order=True))
        return timeline

    assert labels(make().build()) == labels(make().build())


@pytest.mark.unit
def test_save_policy_by_task():
    """Units whose task is listed are flagged for incremental saving."""
    timeline = Timeline(save_incrementally_tasks={'response'})
    timeline.add_unit(create_fixation())
    timeline.add_unit(create_response_trial())

    fixation, response = timeline.build()
    assert fixation.save_incrementally is False
    assert response.save_incrementally is True


@pytest.mark.unit
def test_save_policy_explicit_tag_wins():
    timeline = Timeline(save_incrementally_tasks={'response'})
    timeline.add_unit(create_response_trial(save_incrementally=False))
    timeline.add_unit(create_fixation().with_data(save_incrementally=True))

    response, fixation = timeline.build()
    assert response.save_incrementally is False
    assert fixation.save_incrementally is True


@pytest.mark.unit
def test_timeline_serialization():
    timeline = Timeline(name="serialized", seed=3, save_incrementally_tasks={'response'})
    timeline.add_unit(labelled('welcome'))
    timeline.add_unit(ProceduralBlock("block", timeline=[create_response_trial()], repetitions=2,
                                      randomize_order=True))

    restored = Timeline.from_dict(timeline.to_dict())

    assert restored.name == "serialized"
    assert restored.seed == 3
    assert restored.save_incrementally_tasks == {'response'}
    assert isinstance(restored.units[1], ProceduralBlock)
    assert restored.units[1].repetitions == 2
    assert restored.get_total_units() == 3


@pytest.mark.unit
def test_built_plan_counts_every_member():
    """Each member appears repetitions times in the built plan."""
    block = ProceduralBlock("block", timeline=[labelled('a'), labelled('b')], repetitions=3,
                            randomize_order=True)
    timeline = Timeline(seed=1)
    timeline.add_unit(block)

    assert Counter(labels(timeline.build())) == {'a': 3, 'b': 3}
