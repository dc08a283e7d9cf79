#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2025 NBEL
# SPDX-License-Identifier: Apache-2.0
"""
Interactive tearable cloth demo

Controls:
    Left mouse (hold)   Push the cloth toward the pointer motion
    Right mouse (hold)  Tear links under the pointer
    W                   Toggle wind
    R                   Reset the cloth
    SPACE               Pause
    Q / ESC             Quit

Usage:
    python demo.py
    python demo.py --rows 30 --cols 45 --shear
    python demo.py --pin corners --tear-ratio 1.8
    python demo.py --headless --frames 600 --device cuda
    python demo.py --headless --plot run.png
"""

import argparse
import time

import numpy as np

import cloth_sim
from cloth_sim import ApplyForce, ClothConfig, RemoveLinks


def parse_args():
    parser = argparse.ArgumentParser(description='Tearable cloth demo')
    parser.add_argument('--rows', type=int, default=20,
                        help='Particle rows (default: 20)')
    parser.add_argument('--cols', type=int, default=30,
                        help='Particle columns (default: 30)')
    parser.add_argument('--spacing', type=float, default=0.1,
                        help='Rest spacing between neighbors (default: 0.1)')
    parser.add_argument('--pin', type=str, default='top_row',
                        choices=['top_row', 'corners', 'none'], help='Pin policy (default: top_row)')
    parser.add_argument('--iterations', '-k', type=int, default=5,
                        help='Relaxation passes per frame (default: 5)')
    parser.add_argument('--damping', type=float, default=0.99,
                        help='Velocity retention in (0, 1] (default: 0.99)')
    parser.add_argument('--substeps', type=int, default=1,
                        help='Integrate/relax repetitions per frame (default: 1)')
    parser.add_argument('--shear', action='store_true',
                        help='Add diagonal shear links')
    parser.add_argument('--bend', action='store_true',
                        help='Add skip-one bend links')
    parser.add_argument('--tear-ratio', type=float, default=None,
                        help='Tear links stretched beyond ratio * rest (default: off)')
    parser.add_argument('--wind', action='store_true',
                        help='Start with wind enabled')
    parser.add_argument('--device', type=str, default=None,
                        choices=['cuda', 'cpu'], help='Device (default: warp default)')
    parser.add_argument('--push-force', type=float, default=60.0,
                        help='Acceleration per unit of pointer speed (default: 60)')
    parser.add_argument('--radius', type=float, default=0.15,
                        help='Pointer radius in world units (default: 0.15)')
    parser.add_argument('--window-width', type=int, default=1000,
                        help='Window width (default: 1000)')
    parser.add_argument('--window-height', type=int, default=700,
                        help='Window height (default: 700)')
    parser.add_argument('--fps', type=int, default=60,
                        help='Target frame rate (default: 60)')
    parser.add_argument('--headless', action='store_true',
                        help='Run without a window and report timing')
    parser.add_argument('--frames', type=int, default=600,
                        help='Frames to run in headless mode (default: 600)')
    parser.add_argument('--plot', type=str, default=None,
                        help='Save a headless run summary plot to this PNG path')
    return parser.parse_args()


def config_from_args(args) -> ClothConfig:
    """Create ClothConfig from parsed arguments."""
    return ClothConfig(
        rows=args.rows,
        cols=args.cols,
        spacing=args.spacing,
        pin_policy=args.pin,
        iterations=args.iterations,
        damping=args.damping,
        substeps=args.substeps,
        with_shear=args.shear,
        with_bend=args.bend,
        tear_stretch_ratio=args.tear_ratio,
        wind_enabled=args.wind,
        device=args.device,
    )


def print_banner(config: ClothConfig):
    print("=" * 70)
    print("TEARABLE CLOTH")
    print("=" * 70)
    print(f"  Grid: {config.rows} x {config.cols}, spacing {config.spacing}")
    print(f"  Pins: {config.pin_policy}")
    print(f"  Iterations: {config.iterations}, substeps: {config.substeps}, damping: {config.damping}")
    print(f"  Shear: {config.with_shear}, bend: {config.with_bend}")
    print(f"  Stretch tearing: {config.tear_stretch_ratio or 'off'}")
    print()


def run_headless(config: ClothConfig, frames: int, plot_path=None):
    """Step a cloth with a scripted pointer and report frame time."""
    sim = cloth_sim.build(config=config)
    dt = 1.0 / 60.0
    width = (config.cols - 1) * config.spacing
    height = (config.rows - 1) * config.spacing
    ox, oy = config.origin

    frame_ms = []
    link_history = []

    start = time.time()
    for frame in range(frames):
        t0 = time.time()
        # Sweep across the cloth, tearing every tenth frame
        s = (frame % 120) / 120.0
        anchor = (ox + s * width, oy - 0.5 * height)
        if frame % 10 == 0:
            event = RemoveLinks(anchor=anchor, radius=config.spacing * 0.6)
        else:
            event = ApplyForce(anchor=anchor, radius=config.spacing * 2.0, force=(0.0, 20.0))
        cloth_sim.step(sim, dt, event)
        frame_ms.append(1000.0 * (time.time() - t0))
        link_history.append(cloth_sim.link_count(sim))

        if (frame + 1) % 100 == 0:
            elapsed = time.time() - start
            print(f"frame={frame + 1} | links={cloth_sim.link_count(sim)} | fps={(frame + 1) / max(elapsed, 1e-6):.1f}")

    elapsed = time.time() - start
    q = cloth_sim.positions(sim)
    print()
    print("=" * 70)
    print("RUN COMPLETE")
    print("=" * 70)
    print(f"  Frames: {frames} in {elapsed:.2f}s ({1000.0 * elapsed / max(frames, 1):.2f} ms/frame)")
    print(f"  Links torn: {sim.links_torn} ({cloth_sim.link_count(sim)} left)")
    print(f"  Finite positions: {bool(np.all(np.isfinite(q)))}")

    if plot_path:
        plot_run(frame_ms, link_history, plot_path)


def plot_run(frame_ms, link_history, path):
    """Save frame time and remaining links over a headless run."""
    import matplotlib
    matplotlib.use('Agg')
    import matplotlib.pyplot as plt

    frames = np.arange(1, len(frame_ms) + 1)
    fig, axes = plt.subplots(2, 1, figsize=(10, 8), sharex=True)

    axes[0].plot(frames, frame_ms, 'b-', linewidth=1)
    axes[0].set_ylabel('Step time (ms)', fontsize=12)
    axes[0].set_title('Headless Cloth Run', fontsize=14, fontweight='bold')
    axes[0].grid(True, alpha=0.3)

    axes[1].plot(frames, link_history, 'r-', linewidth=2)
    axes[1].set_ylabel('Active links', fontsize=12)
    axes[1].set_xlabel('Frame', fontsize=12)
    axes[1].grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    print(f"  ✓ Plot saved as: {path}")


def run_viewer(config: ClothConfig, args):
    """Open a pygame window and drive the cloth from mouse and keyboard."""
    import pygame
    from pygame_renderer import Renderer

    width = (config.cols - 1) * config.spacing
    height = (config.rows - 1) * config.spacing
    margin = 0.25 * max(width, height) + config.spacing
    view_height = max(height + 2.0 * margin, (width + 2.0 * margin) * args.window_height / args.window_width)
    view_x0 = config.origin[0] + 0.5 * width - 0.5 * view_height * args.window_width / args.window_height
    view_y0 = config.origin[1] - view_height + margin

    renderer = Renderer(
        window_width=args.window_width,
        window_height=args.window_height,
        view=(view_x0, view_y0, view_height),
    )

    pygame.init()
    window = pygame.display.set_mode((args.window_width, args.window_height))
    pygame.display.set_caption("Tearable Cloth")
    clock = pygame.time.Clock()

    sim = cloth_sim.build(config=config)
    pinned = sim.model.pinned_mask()
    running = True
    paused = False
    last_pointer = None
    frame_count = 0
    start_time = time.time()

    print("Left mouse: push | Right mouse: tear | W: wind | R: reset | SPACE: pause | Q/ESC: quit")
    print()

    while running:
        dt = clock.tick(args.fps) / 1000.0

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key in (pygame.K_q, pygame.K_ESCAPE):
                    running = False
                elif event.key == pygame.K_r:
                    sim = cloth_sim.reset(sim)
                    print("Reset")
                elif event.key == pygame.K_w:
                    cloth_sim.set_wind(sim, not sim.solver.wind_enabled)
                    print("Wind on" if sim.solver.wind_enabled else "Wind off")
                elif event.key == pygame.K_SPACE:
                    paused = not paused
                    print("Paused" if paused else "Resumed")

        pointer = renderer.screen_to_world(*pygame.mouse.get_pos())
        left, _, right = pygame.mouse.get_pressed()

        action = None
        if right:
            action = RemoveLinks(anchor=pointer, radius=args.radius)
        elif left and last_pointer is not None and dt > 0.0:
            velocity = ((pointer[0] - last_pointer[0]) / dt, (pointer[1] - last_pointer[1]) / dt)
            force = (velocity[0] * args.push_force, velocity[1] * args.push_force)
            action = ApplyForce(anchor=pointer, radius=args.radius, force=force)
        last_pointer = pointer

        if not paused:
            cloth_sim.step(sim, dt, action)
            frame_count += 1

        positions = cloth_sim.positions(sim)
        links = cloth_sim.links(sim)
        strains = sim.solver.link_strains(sim.state)

        canvas = renderer.create_canvas()
        renderer.draw_links(canvas, links, positions, strains)
        renderer.draw_particles(canvas, positions, pinned)
        renderer.draw_pointer(canvas, pointer, args.radius, tearing=bool(right))
        if sim.solver.wind_enabled:
            renderer.draw_wind_arrow(canvas, sim.solver.wind_force)
        renderer.draw_info_text(canvas, [
            (f"FPS: {clock.get_fps():.0f}", renderer.BLACK),
            (f"Particles: {cloth_sim.particle_count(sim)}", renderer.BLACK),
            (f"Links: {len(links)} (torn {sim.links_torn})", renderer.BLACK),
            ("PAUSED" if paused else "", renderer.GREY),
        ])

        window.blit(canvas, canvas.get_rect())
        pygame.display.flip()

        if frame_count and frame_count % 300 == 0 and not paused:
            fps = frame_count / max(time.time() - start_time, 0.01)
            print(f"frame={frame_count} | links={len(links)} | fps={fps:.1f}")

    pygame.quit()


def main():
    args = parse_args()
    config = config_from_args(args)
    print_banner(config)

    if args.headless:
        run_headless(config, args.frames, args.plot)
    else:
        run_viewer(config, args)


if __name__ == "__main__":
    main()
