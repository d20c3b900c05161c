"""
Dot-motion experiment definition.

Preload, welcome and instruction screens, then a randomized test procedure
of six (fixation, cue, RDK) items.

By default each item is its own sub-block, so shuffling moves whole items and
a cue always precedes its own RDK. With group_items=False the 18 units sit in
one flat block and are shuffled individually, as the hosted study did; cues
and RDKs then no longer pair up.
"""

import random
from typing import Dict, List, Optional

from core.execution.block import ProceduralBlock
from core.execution.randomization import sample_without_replacement
from core.execution.timeline import Timeline
from core.execution.trial import NO_KEYS
from core.execution.trials import HtmlKeyboardResponse, Preload, RandomDotKinematogram

IMAGES = ('images/blue.png', 'images/orange.png')

FIXATION_DURATIONS = [250, 500, 750, 1000, 1250, 1500, 1750, 2000]

CUES = {
    'blue_always': 'The blue dots always move.',
    'yellow_usually': 'The yellow dots usually move.',
    'blue_usually': 'The blue dots usually move.',
    'blue_often': 'The blue dots move more often than not.',
}

# (cue, correct key, aperture width, move distance, dot colors, dot counts, layout)
TEST_TRIALS = [
    ('blue_always', 'a', 500, [0, 1, 1], ['yellow', 'yellow', 'blue'], [150, 50, 200], 'split'),
    ('yellow_usually', 'f', 200, [1, 0, 1], ['yellow', 'yellow', 'blue'], [150, 50, 200], 'split'),
    ('blue_always', 'a', 200, [1, 0.5, 0], ['yellow', 'blue', 'blue'], [200, 150, 50], 'split_right'),
    ('blue_usually', 'a', 200, [0, 1, 1], ['yellow', 'yellow', 'blue'], [150, 50, 200], 'center'),
    ('blue_often', 'f', 200, [1, 0, 1], ['yellow', 'yellow', 'blue'], [150, 50, 200], 'center'),
    ('blue_usually', 'a', 200, [1, 0.5, 0], ['yellow', 'blue', 'blue'], [200, 150, 50], 'center'),
]

APERTURE_OFFSET = 150


def aperture_centers(layout: str, screen_width: int) -> List[float]:
    """
    Horizontal aperture centers in px for a three-aperture layout.
    """
    middle = screen_width / 2
    left, right = middle - APERTURE_OFFSET, middle + APERTURE_OFFSET
    layouts: Dict[str, List[float]] = {
        'split': [left, left, right],
        'split_right': [left, right, right],
        'center': [middle, middle, middle],
    }
    return layouts[layout]


def build_dot_motion_timeline(screen_width: int = 1920, seed: Optional[int] = None,
                              rng: Optional[random.Random] = None,
                              group_items: bool = True) -> Timeline:
    """
    Build the dot-motion timeline.

    Args:
        screen_width: Display width in px (aperture placement)
        seed: Seed for the test-procedure order
        rng: Generator for jittered fixation durations (default: seeded from seed)
        group_items: Keep each (fixation, cue, RDK) item contiguous when shuffling
                     (False = shuffle all 18 units individually)

    Returns:
        Timeline with response trials flagged for incremental saving
    """
    rng = rng or random.Random(seed)
    timeline = Timeline(name="dot_motion", seed=seed, save_incrementally_tasks={'response'})

    timeline.add_unit(Preload(images=IMAGES))
    timeline.add_unit(HtmlKeyboardResponse(
        stimulus='<span class="text-xl">Welcome to the experiment. Press any key to begin.</span>',
    ))
    timeline.add_unit(HtmlKeyboardResponse(
        stimulus=(
            '<p>In this experiment, you will see groups of moving dots.</p>'
            '<p>Press any key to begin.</p>'
        ),
        post_trial_gap=2000,
    ))

    test_procedure = ProceduralBlock("test_procedure", randomize_order=True)
    for i, (cue, key, width, distance, colors, dots, layout) in enumerate(TEST_TRIALS, start=1):
        item = [
            HtmlKeyboardResponse(
                stimulus='<div style="font-size:60px;">+</div>',
                choices=NO_KEYS,
                trial_duration=lambda: sample_without_replacement(FIXATION_DURATIONS, 1, rng)[0],
                data={'task': 'fixation'},
            ),
            HtmlKeyboardResponse(
                stimulus=f'<p>{CUES[cue]}</p>',
                post_trial_gap=2000,
                data={'task': 'cue', 'cue': cue},
            ),
            RandomDotKinematogram(
                number_of_apertures=3,
                trial_duration=10000,
                correct_choice=key,
                rdk_type=3,
                aperture_type=1,
                aperture_width=width,
                move_distance=distance,
                dot_color=colors,
                number_of_dots=dots,
                aperture_center_x=aperture_centers(layout, screen_width),
                data={'task': 'response', 'item': i, 'cue': cue},
            ),
        ]
        if group_items:
            test_procedure.add_unit(ProceduralBlock(f"item_{i}", timeline=item))
        else:
            for unit in item:
                test_procedure.add_unit(unit)
    timeline.add_unit(test_procedure)

    return timeline
