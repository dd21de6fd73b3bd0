import argparse
import json
import os
import sys
from typing import List, Optional

from .exercise_analysis.catalog import default_catalog
from .exercise_analysis.config_utils import CatalogError, load_session_settings
from .feedback.realtime_feedback import VisualCue
from .logging_utils import get_logger
from .rehab.decision_engine import RehabDecisionEngine
from .trainer import FrameResult, RehabTrainer, SessionSummary

logger = get_logger("RehabMotion")

WINDOW_NAME = "Rehab Motion"
# BGR
CUE_COLORS = {
    VisualCue.GREEN: (0, 255, 0),
    VisualCue.YELLOW: (0, 200, 255),
    VisualCue.RED: (0, 0, 255),
    None: (255, 255, 255),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rehab exercise motion analysis")
    parser.add_argument('--mode', type=str, choices=['camera', 'video', 'plan'], default='camera',
                        help='Run mode: camera (default), video or plan')
    parser.add_argument('--exercise', type=str, default='squats', help='Exercise id from the catalog')
    parser.add_argument('--camera', type=int, default=0, help='Camera device ID')
    parser.add_argument('--video', type=str, help='Path to the video file to analyze (required if mode=video)')
    parser.add_argument('--history', type=str,
                        help='JSON file with profile, painLogs and sessions (plan mode)')
    parser.add_argument('--settings', type=str, help='Override session_config.json')
    parser.add_argument('--no-display', action='store_true', help='Analyze without opening a window')
    return parser


def run_plan(history_path: Optional[str]) -> dict:
    records = {}
    if history_path:
        with open(history_path, "r", encoding="utf-8") as f:
            records = json.load(f)
    profile, pain_logs, sessions = RehabDecisionEngine.from_records(records)
    engine = RehabDecisionEngine(profile)
    return engine.plan(pain_logs, sessions).to_dict()


def _draw_overlay(frame, result: FrameResult, exercise_name: str) -> None:
    import cv2

    color = CUE_COLORS.get(result.feedback.visual_cue, CUE_COLORS[None])
    lines = [
        (f"Exercise: {exercise_name}", (0, 255, 0)),
        (f"Phase: {result.phase.value}", (0, 255, 0)),
        (f"Reps: {result.rep_count}", (0, 255, 0)),
        (result.feedback.message, color),
    ]
    for idx, (text, line_color) in enumerate(lines):
        cv2.putText(frame, text, (10, 30 + 30 * idx), cv2.FONT_HERSHEY_SIMPLEX, 0.6, line_color, 2)


def run_capture(trainer: RehabTrainer, source, show: bool = True) -> SessionSummary:
    """Drive the trainer from a camera index or a video path until the stream ends or 'q' is pressed."""
    import cv2

    cap = cv2.VideoCapture(source)
    if not cap.isOpened():
        raise RuntimeError(f"Failed to open video source: {source}")

    config = trainer.catalog.get(trainer.exercise_id)
    exercise_name = config.name if config is not None else str(trainer.exercise_id)
    frame_count = 0
    last_result: Optional[FrameResult] = None
    try:
        while cap.isOpened():
            ret, frame = cap.read()
            if not ret:
                break
            frame_count += 1
            timestamp_ms = cap.get(cv2.CAP_PROP_POS_MSEC) if isinstance(source, str) else None
            result = trainer.process_frame(frame, timestamp_ms)
            if result is not None and (result.should_render or last_result is None):
                last_result = result
            if not show:
                continue
            if last_result is not None:
                _draw_overlay(frame, last_result, exercise_name)
            cv2.imshow(WINDOW_NAME, frame)
            if cv2.waitKey(1) & 0xFF == ord('q'):
                break
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received, stopping")
    finally:
        cap.release()
        if show:
            cv2.destroyAllWindows()
    logger.info(f"Capture finished after {frame_count} frames")
    return trainer.close()


def format_summary(summary: SessionSummary) -> str:
    lines = [
        f"Exercise: {summary.exercise_name or summary.exercise_id}",
        f"Reps: {summary.total_reps}",
        f"Grade: {summary.session_score.grade} (average {summary.session_score.average_score})",
        f"Form quality: {summary.quality.overall_score}",
        f"Range of motion: {summary.rom.range_of_motion}° "
        f"({summary.rom.min_angle}°-{summary.rom.max_angle}°)",
        f"Duration: {summary.duration_seconds:.1f}s",
    ]
    for joint, count in sorted(summary.corrections.items(), key=lambda kv: -kv[1]):
        lines.append(f"  {joint} corrected {count}x")
    for recommendation in summary.recommendations:
        lines.append(f"  [{recommendation.kind}] {recommendation.message}")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the rehab-motion command."""
    args = build_parser().parse_args(argv)

    try:
        if args.mode == 'plan':
            print(json.dumps(run_plan(args.history), indent=2))
            return 0

        if args.exercise not in default_catalog():
            logger.error(f"Unknown exercise '{args.exercise}'. Available: {', '.join(default_catalog().exercises)}")
            return 1
        if args.mode == 'video':
            if not args.video:
                logger.error("--video is required when mode is 'video'")
                return 1
            if not os.path.isfile(args.video):
                logger.error(f"Video file not found: {args.video}")
                return 1

        from .pose_detection.mediapipe_detector import MediaPipePoseDetector

        settings = load_session_settings(args.settings)
        detector = MediaPipePoseDetector()
        trainer = RehabTrainer(settings=settings, pose_detector=detector)
        trainer.open(args.exercise)
        try:
            source = args.video if args.mode == 'video' else args.camera
            summary = run_capture(trainer, source, show=not args.no_display)
        finally:
            detector.close()
            if trainer.is_open:
                trainer.close()
        print(format_summary(summary))
        return 0
    except ImportError as e:
        logger.error(f"Camera support is not installed ({e}); install the 'camera' extra")
        return 1
    except (CatalogError, KeyError, OSError, RuntimeError, TypeError, ValueError) as e:
        logger.error(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
