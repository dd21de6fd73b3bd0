"""
Pose detectors. The MediaPipe implementation needs the 'camera' extra and
is imported from its module directly.
"""
