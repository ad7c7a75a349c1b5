"""
Main Application Module

Interactive console front-end: register, authenticate, list and clear users.
Observes enrollment state transitions and prints the status strings.
"""

import argparse
import logging
import sys
from typing import Any, Dict, Optional

import cv2
import numpy as np
import yaml

from .authenticator import AuthResult, FaceAuthenticator
from .capture import BoundingBox
from .enrollment import EnrollmentState
from .errors import FaceAuthError

logger = logging.getLogger(__name__)

FONT = cv2.FONT_HERSHEY_SIMPLEX
LABEL_COLOR = (216, 233, 189)
LABEL_BG_COLOR = (23, 6, 2)


def setup_logging(log_file: Optional[str] = 'face_auth.log', level=logging.INFO):
    """Configure root logging to stdout and, optionally, a log file."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def get_default_config() -> Dict[str, Any]:
    """Get default configuration."""
    return {
        'storage': {
            'backend': 'file',
            'path': 'data/local_storage.json',
            'key': 'faceAuthUsers',
            'enforce_global_dimension': False
        },
        'recognition': {
            'distance_threshold': 0.6
        },
        'enrollment': {
            'sample_count': 3,
            'per_sample_delay_ms': 700,
            'tick_count': 3
        },
        'embedding': {
            'detection_model': 'hog',
            'encoding_model': 'small',
            'num_jitters': 1,
            'upsample_times': 1,
            'normalization': False
        },
        'camera': {
            'device_id': 0,
            'width': 640,
            'height': 480
        },
        'ui': {
            'show_window': True
        }
    }


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file, falling back to defaults."""
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
        logger.info(f"Configuration loaded from {config_path}")
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load config: {e}")
        return get_default_config()

    # Sections missing from the file keep their defaults
    merged = get_default_config()
    for section, values in config.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return merged


def annotate_match(frame: np.ndarray, box: BoundingBox, label: str) -> np.ndarray:
    """
    Draw the face box and a label above it.

    Args:
        frame: BGR image
        box: Face bounding box
        label: Text to draw

    Returns:
        Annotated copy of the frame
    """
    annotated = frame.copy()
    height, width = annotated.shape[:2]

    font_scale = max(0.4, width / 1000.0)
    thickness = 1 if font_scale < 0.8 else 2
    padding = 6

    cv2.rectangle(annotated, (box.x, box.y), (box.x + box.width, box.y + box.height),
                  LABEL_COLOR, 2)

    (text_width, text_height), _ = cv2.getTextSize(label, FONT, font_scale, thickness)
    tx = max(4, box.x)
    ty = max(text_height + 8, box.y - 8)

    cv2.rectangle(annotated,
                  (tx - padding, ty - text_height - padding // 2),
                  (min(width - 1, tx + text_width + padding), ty + padding // 2),
                  LABEL_BG_COLOR, -1)
    cv2.putText(annotated, label, (tx, ty), FONT, font_scale, LABEL_COLOR, thickness)

    return annotated


class FaceAuthApp:
    """Console face authentication application."""

    def __init__(self, config: Dict[str, Any], authenticator: FaceAuthenticator = None):
        """
        Initialize the application.

        Args:
            config: Configuration dictionary
            authenticator: Pre-built service (a camera-backed one is created if omitted)
        """
        self.config = config
        self.show_window = config.get('ui', {}).get('show_window', True)

        if authenticator is None:
            # Loads dlib models; only needed when driving a real camera
            from .embedding_extractor import CameraEmbeddingExtractor
            authenticator = FaceAuthenticator(config, CameraEmbeddingExtractor(config))
        self.authenticator = authenticator
        self.authenticator.enrollment.subscribe(self.on_enrollment_state)

        self.is_running = False
        logger.info("Face authentication application initialized")

    def on_enrollment_state(self, state: EnrollmentState):
        print(state.status)

    def register(self, name: str) -> EnrollmentState:
        state = self.authenticator.register(name)
        if state.finished:
            logger.info(f"Registration finished: {state.status}")
        return state

    def authenticate(self) -> AuthResult:
        result = self.authenticator.authenticate()
        print(result.status)

        if result.authenticated and result.capture is not None and result.capture.frame is not None:
            annotated = annotate_match(result.capture.frame, result.capture.box, result.match.name)
            if self.show_window:
                cv2.imshow('FaceAuth', annotated)
                cv2.waitKey(1)

        return result

    def handle_command(self, cmd: str) -> bool:
        """
        Execute one interactive command.

        Returns:
            False when the user asked to quit
        """
        if cmd == 'q':
            return False
        elif cmd == 'r':
            name = input("Enter username to register: ")
            self.register(name)
        elif cmd == 'a':
            self.authenticate()
        elif cmd == 'c':
            print(self.authenticator.clear_all())
        elif cmd == 'l':
            names = self.authenticator.list_names()
            print(f"Registered users ({len(names)}):")
            for name in names:
                print(f"  {name}")
        elif cmd == 'p':
            stats = self.authenticator.get_statistics()
            print(f"Statistics: {stats}")
        elif cmd:
            print(f"Unknown command: {cmd}")
        return True

    def run_interactive_mode(self):
        """Run the interactive command loop."""
        print("\n=== FaceAuth ===")
        print("Commands:")
        print("  'r' - Register face")
        print("  'a' - Login with face")
        print("  'c' - Clear users")
        print("  'l' - List registered users")
        print("  'p' - Print statistics")
        print("  'q' - Quit\n")

        self.is_running = True
        try:
            while self.is_running:
                try:
                    cmd = input("> ").strip().lower()
                except EOFError:
                    break

                try:
                    self.is_running = self.handle_command(cmd)
                except FaceAuthError as e:
                    print(f"Command error: {e}")
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            self._cleanup()

    def _cleanup(self):
        """Clean up resources."""
        self.is_running = False
        self.authenticator.close()
        if self.show_window:
            cv2.destroyAllWindows()
        logger.info("Application cleanup completed")


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description='FaceAuth - face login demo')
    parser.add_argument('--config', '-c', default='config/config.yaml',
                        help='Configuration file path')
    parser.add_argument('--camera', type=int,
                        help='Camera device ID')
    parser.add_argument('--storage', '-s', type=str,
                        help='Local storage file path')
    parser.add_argument('--log-file', default='face_auth.log',
                        help='Log file path (empty to disable)')

    args = parser.parse_args(argv)
    setup_logging(args.log_file or None)

    config = load_config(args.config)
    if args.camera is not None:
        config['camera']['device_id'] = args.camera
    if args.storage:
        config['storage']['path'] = args.storage

    try:
        app = FaceAuthApp(config)
        app.run_interactive_mode()
        return 0
    except Exception as e:
        logger.error(f"Application error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
