import copy
import logging

import numpy as np
import pytest

from burst.core.loop import BurstLoop, LoopConfig, LoopState, integrate, draw_particle
from burst.core.particles import Particle, ShapeVariant
from burst.core.scheduler import ManualScheduler
from burst.core.styles import (
    BurstKind, BurstStyle, UnknownStyleError, GAME_STYLE, MEDIA_STYLE, HOT_PINK, SOFT_PINK,
)
from burst.core.surface import RasterSurface

from conftest import FakeClock, LeakyScheduler, RecordingSurface, ScriptedRng


def single(**kwargs):
    """Factory producing one particle with the given state at the origin"""
    def factory(style, x, y, rng):
        return [Particle(x=x, y=y, **kwargs)]
    return factory


def make_loop(scheduler, surface, clock, factory=None, rng=None, **kwargs):
    if factory is not None:
        kwargs['factory'] = factory
    return BurstLoop(scheduler, surface, rng=rng or np.random.default_rng(0), clock=clock, **kwargs)


# =============================================================================
# Single frame physics
# =============================================================================

def test_one_game_frame_matches_hand_computation(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock, single(vx=200.0, vy=-300.0, size=6.0))
    loop.activate('game', origin=(100.0, 100.0))

    scheduler.tick(1 / 60)

    (p,) = loop.particles
    expected_vx = 200.0 * 0.86
    expected_vy = (-300.0 + 520.0 / 60) * 0.86
    assert p.vx == pytest.approx(expected_vx)
    assert p.vy == pytest.approx(expected_vy)
    assert p.vy == pytest.approx(-250.547, abs=1e-3)
    assert p.x == pytest.approx(100.0 + expected_vx / 60)
    assert p.y == pytest.approx(100.0 + expected_vy / 60)
    assert p.life == pytest.approx(0.9775)


def test_rotation_accumulates(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock, single(rotation=1.0, angular_velocity=6.0))
    loop.activate('game')

    scheduler.tick(1 / 60)

    assert loop.particles[0].rotation == pytest.approx(1.1)
    assert loop.particles[0].angular_velocity == 6.0


def test_zero_dt_first_frame_renders_spawn_state(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock, single(vx=50.0, vy=-80.0, size=8.0, rotation=0.5))
    loop.activate('game', origin=(40.0, 60.0))

    scheduler.tick(0.0)

    (p,) = loop.particles
    assert (p.x, p.y, p.vx, p.vy, p.life) == (40.0, 60.0, 50.0, -80.0, 1.0)
    assert surface.calls[-2].op == 'clear'
    draw = surface.calls[-1]
    assert draw.op == 'fill_rect'
    assert draw.args == dict(cx=40.0, cy=60.0, size=8.0, rotation=0.5, color=(255, 255, 255), alpha=1.0)


def test_long_stall_is_clamped(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock, single())
    loop.activate('game')

    scheduler.tick(5.0)

    assert loop.particles[0].life == pytest.approx(1.0 - 1.35 * 0.033)


def test_clock_going_backwards_is_zero_dt(scheduler, surface):
    clock = FakeClock(10.0)
    loop = make_loop(scheduler, surface, clock, single(vx=10.0))
    loop.activate('game')

    scheduler.tick(9.0)

    assert loop.particles[0].x == 100.0
    assert loop.particles[0].life == 1.0


def test_custom_max_dt(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock, single(), config=LoopConfig(max_dt=0.01))
    loop.activate('media')

    scheduler.tick(1.0)

    assert loop.particles[0].life == pytest.approx(1.0 - 1.2 * 0.01)


def test_loop_config_validation():
    with pytest.raises(ValueError):
        LoopConfig(max_dt=0.0).validate()
    with pytest.raises(ValueError):
        LoopConfig(reference_fps=-1).validate()


# =============================================================================
# Whole bursts
# =============================================================================

def run_to_end(scheduler, fps=60.0, max_frames=500):
    return scheduler.run(fps=fps, max_frames=max_frames, start=0.0)


def test_life_is_monotonic_and_bounded(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock, rng=np.random.default_rng(5))
    loop.activate('media')

    last_life = {id(p): p.life for p in loop.particles}
    while loop.is_running:
        scheduler.tick(scheduler.frames_ticked / 60)
        for p in loop.particles:
            assert 0.0 < p.life <= 1.0
            assert p.life <= last_life[id(p)]
            last_life[id(p)] = p.life


def test_burst_only_shrinks(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock, rng=np.random.default_rng(6))
    loop.activate('game')
    counts = []

    def record(index, timestamp):
        counts.append(loop.particle_count)

    scheduler.run(fps=60, start=0.0, on_tick=record)

    assert counts == sorted(counts, reverse=True)
    assert counts[-1] == 0


def test_dead_particles_are_never_drawn(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock, rng=np.random.default_rng(7))
    loop.activate('media')

    run_to_end(scheduler)

    draws = surface.draws()
    assert draws
    assert all(0.0 < d.args['alpha'] <= 1.0 for d in draws)


def test_burst_ends_and_stays_idle(scheduler, surface, clock):
    finished = []
    loop = make_loop(scheduler, surface, clock, on_complete=finished.append)
    loop.activate('game')

    ticks = run_to_end(scheduler)

    assert 40 < ticks < 60
    assert loop.state is LoopState.IDLE
    assert loop.particle_count == 0
    assert scheduler.pending == 0
    assert finished == [GAME_STYLE]
    assert surface.calls[-1].op == 'clear'

    # Nothing more happens without a new activation
    recorded = len(surface.calls)
    for i in range(5):
        scheduler.tick(10.0 + i)
    assert len(surface.calls) == recorded
    assert loop.state is LoopState.IDLE


def test_burst_can_run_again_after_finishing(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock)
    loop.activate('game')
    run_to_end(scheduler)

    clock.now = 100.0
    assert loop.activate('media') is True
    assert loop.is_running
    assert loop.particle_count == 45


def test_empty_style_finishes_on_first_frame(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock)
    loop.activate(BurstStyle(name='empty', count=0))

    scheduler.tick(0.0)

    assert loop.state is LoopState.IDLE
    assert scheduler.pending == 0


def test_fixed_and_variable_dt_agree():
    base = Particle(x=100.0, y=100.0, vx=200.0, vy=-300.0)
    fixed = copy.copy(base)
    variable = copy.copy(base)

    for _ in range(30):
        integrate(fixed, GAME_STYLE, 1 / 60)
    for _ in range(15):
        integrate(variable, GAME_STYLE, 1 / 50)
        integrate(variable, GAME_STYLE, 1 / 75)

    assert variable.x == pytest.approx(fixed.x, abs=1.0)
    assert variable.y == pytest.approx(fixed.y, abs=1.0)
    assert variable.life == pytest.approx(fixed.life)
    assert variable.rotation == pytest.approx(fixed.rotation)


def test_step_uses_explicit_dt(surface, clock):
    loop = make_loop(ManualScheduler(), surface, clock, single(vx=60.0))
    loop.activate('game')

    assert loop.step(1 / 60) is True
    assert loop.particles[0].life == pytest.approx(0.9775)
    assert loop.frames_rendered == 1


def test_step_when_idle_does_nothing(surface, clock):
    loop = make_loop(ManualScheduler(), surface, clock)
    assert loop.step(1 / 60) is False
    assert surface.calls == []


# =============================================================================
# Rendering rules
# =============================================================================

def test_game_draws_rotated_white_squares(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock, rng=np.random.default_rng(8))
    loop.activate('game')

    scheduler.tick(1 / 60)

    draws = surface.draws()
    assert len(draws) == 55
    assert {d.op for d in draws} == {'fill_rect'}
    for d, p in zip(draws, loop.particles):
        assert d.args['color'] == (255, 255, 255)
        assert d.args['size'] == p.size
        assert d.args['rotation'] == p.rotation
        assert d.args['alpha'] == p.life


def test_hollow_media_particle_is_never_filled(scheduler, surface, clock):
    # Alternate hot and cool draws every frame
    rng = ScriptedRng(randoms=[0.1, 0.9])
    loop = make_loop(scheduler, surface, clock, single(size=6.0, shape=ShapeVariant.HOLLOW), rng=rng)
    loop.activate('media')

    run_to_end(scheduler)

    draws = surface.draws()
    assert len(draws) > 10
    assert {d.op for d in draws} == {'stroke_circle'}
    assert {d.args['color'] for d in draws} == {SOFT_PINK, HOT_PINK}
    assert all(d.args['width'] == 2.0 for d in draws)
    assert all(d.args['radius'] == 3.0 for d in draws)


def test_filled_media_colour_follows_draw():
    surface = RecordingSurface()
    p = Particle(x=1.0, y=2.0, size=4.0, life=0.5)

    draw_particle(surface, p, MEDIA_STYLE, ScriptedRng(randoms=[0.2]))
    draw_particle(surface, p, MEDIA_STYLE, ScriptedRng(randoms=[0.7]))

    hot, cool = surface.calls
    assert hot.op == cool.op == 'fill_circle'
    assert hot.args == dict(cx=1.0, cy=2.0, radius=2.0, color=HOT_PINK, alpha=0.5)
    assert cool.args['color'] == SOFT_PINK


def test_hollow_stroke_uses_paired_stroke_colour():
    surface = RecordingSurface()
    p = Particle(size=4.0, shape=ShapeVariant.HOLLOW)

    draw_particle(surface, p, MEDIA_STYLE, ScriptedRng(randoms=[0.2]))

    assert surface.calls[0].args['color'] == SOFT_PINK


def test_media_colour_is_rerolled_each_frame(scheduler, surface, clock):
    rng = ScriptedRng(randoms=[0.1, 0.9])
    loop = make_loop(scheduler, surface, clock, single(size=6.0), rng=rng)
    loop.activate('media')

    scheduler.tick(0.0)
    scheduler.tick(1 / 60)

    first, second = surface.draws()
    assert first.args['color'] == HOT_PINK
    assert second.args['color'] == SOFT_PINK


def test_draw_particle_skips_dead():
    surface = RecordingSurface()
    draw_particle(surface, Particle(life=0.0), GAME_STYLE, ScriptedRng())
    assert surface.calls == []


# =============================================================================
# Cancellation and replacement
# =============================================================================

def test_deactivate_cancels_and_clears(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock)
    loop.activate('game')
    scheduler.tick(1 / 60)

    assert loop.deactivate() is True

    assert loop.state is LoopState.IDLE
    assert loop.particle_count == 0
    assert scheduler.pending == 0
    assert surface.calls[-1].op == 'clear'
    assert loop.deactivate() is False


def test_stale_callback_is_discarded(surface, clock):
    scheduler = LeakyScheduler()
    loop = make_loop(scheduler, surface, clock)
    loop.activate('game')
    scheduler.tick(1 / 60)

    # The game frame request made above is still queued
    loop.deactivate()
    loop.activate('media')
    mark = len(surface.calls)

    while scheduler.pending and scheduler.frames_ticked < 200:
        scheduler.tick(scheduler.frames_ticked / 60)

    draws = surface.draws(since=mark)
    assert draws
    assert not any(d.op == 'fill_rect' for d in draws)
    assert scheduler.cancelled


def test_stale_callback_logs_at_debug(surface, clock, caplog):
    scheduler = LeakyScheduler()
    loop = make_loop(scheduler, surface, clock)
    loop.activate('game')
    loop.deactivate()

    with caplog.at_level(logging.DEBUG, logger='burst.core.loop'):
        scheduler.tick(0.0)

    assert 'stale' in caplog.text
    assert surface.draws() == []


def test_reactivation_replaces_burst(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock)
    loop.activate('game')
    generation = loop.generation

    loop.activate('media')

    assert loop.style is MEDIA_STYLE
    assert loop.particle_count == 45
    assert loop.generation > generation
    assert scheduler.pending == 1


def test_signal_transitions(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock)

    loop.update_signal(False, 'none')
    assert loop.state is LoopState.IDLE

    loop.update_signal(True, 'game')
    assert loop.style is GAME_STYLE
    generation = loop.generation

    # Same pair again is not a transition
    loop.update_signal(True, BurstKind.GAME)
    assert loop.generation == generation

    loop.update_signal(True, 'media')
    assert loop.style is MEDIA_STYLE

    loop.update_signal(False, 'media')
    assert loop.state is LoopState.IDLE
    assert scheduler.pending == 0


def test_signal_none_kind_cancels(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock)
    loop.update_signal(True, 'media')

    loop.update_signal(True, 'none')

    assert loop.state is LoopState.IDLE


def test_signal_stays_idle_after_natural_completion(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock)
    loop.update_signal(True, 'game')
    run_to_end(scheduler)

    loop.update_signal(True, 'game')

    assert loop.state is LoopState.IDLE


def test_unknown_style_is_not_swallowed(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock)
    with pytest.raises(UnknownStyleError):
        loop.activate('confetti')
    with pytest.raises(UnknownStyleError):
        loop.update_signal(True, 'video')


@pytest.mark.parametrize('changes', [{'drag': -0.5}, {'fade_rate': 0.0}])
def test_invalid_style_object_is_rejected(scheduler, surface, clock, changes):
    loop = make_loop(scheduler, surface, clock)

    with pytest.raises(ValueError):
        loop.activate(BurstStyle(name='broken', **changes))

    assert loop.state is LoopState.IDLE
    assert scheduler.pending == 0


# =============================================================================
# Surface lifecycle
# =============================================================================

def test_activation_without_surface_is_a_no_op(scheduler, clock):
    loop = BurstLoop(scheduler, None, clock=clock)

    assert loop.activate('game') is False
    assert loop.state is LoopState.IDLE
    assert scheduler.pending == 0


def test_detach_mid_burst(scheduler, surface, clock):
    loop = make_loop(scheduler, surface, clock)
    loop.activate('game')

    loop.detach()
    scheduler.tick(1 / 60)

    assert loop.surface is None
    assert loop.state is LoopState.IDLE
    assert scheduler.pending == 0
    assert surface.draws() == []
    assert loop.activate('game') is False


def test_attach_later(scheduler, surface, clock):
    loop = BurstLoop(scheduler, None, clock=clock)
    loop.attach(surface)

    assert loop.activate('media') is True
    assert loop.particles[0].x == 100.0


def test_default_origin_is_surface_centre(scheduler, clock):
    loop = make_loop(scheduler, RecordingSurface(300, 120), clock)
    loop.activate('game')
    assert {(p.x, p.y) for p in loop.particles} == {(150.0, 60.0)}


def test_resize_keeps_particle_coordinates(scheduler, clock):
    surface = RasterSurface(200, 150, pixel_ratio=1.0)
    loop = make_loop(scheduler, surface, clock, rng=np.random.default_rng(9))
    loop.activate('media')
    scheduler.tick(1 / 60)
    before = [(p.x, p.y, p.vx, p.vy) for p in loop.particles]

    surface.resize(400, 300, pixel_ratio=2.0)

    assert [(p.x, p.y, p.vx, p.vy) for p in loop.particles] == before
    scheduler.tick(2 / 60)
    assert loop.is_running


def test_two_surfaces_share_a_scheduler(scheduler, clock):
    left, right = RecordingSurface(), RecordingSurface()
    game = make_loop(scheduler, left, clock)
    media = make_loop(scheduler, right, clock)

    game.activate('game')
    media.activate('media')
    scheduler.tick(1 / 60)
    game.deactivate()
    scheduler.tick(2 / 60)

    assert not game.is_running
    assert media.is_running
    assert {d.op for d in left.draws()} == {'fill_rect'}
    assert {d.op for d in right.draws()} <= {'fill_circle', 'stroke_circle'}
    assert len(right.draws()) == 90
