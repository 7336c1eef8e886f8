from __future__ import annotations
from dataclasses import dataclass
import numpy as np

def rotation_from_rpy(rpy_rad: np.ndarray) -> np.ndarray:
    """Rz @ Ry @ Rx for one ``(3,)`` or many ``(M, 3)`` roll/pitch/yaw triples."""
    rpy = np.asarray(rpy_rad, dtype=float)
    rx, ry, rz = np.moveaxis(rpy, -1, 0)
    cx, sx = np.cos(rx), np.sin(rx)
    cy, sy = np.cos(ry), np.sin(ry)
    cz, sz = np.cos(rz), np.sin(rz)
    R = np.empty(rpy.shape[:-1] + (3, 3))
    R[..., 0, 0] = cz * cy
    R[..., 0, 1] = cz * sy * sx - sz * cx
    R[..., 0, 2] = cz * sy * cx + sz * sx
    R[..., 1, 0] = sz * cy
    R[..., 1, 1] = sz * sy * sx + cz * cx
    R[..., 1, 2] = sz * sy * cx - cz * sx
    R[..., 2, 0] = -sy
    R[..., 2, 1] = cy * sx
    R[..., 2, 2] = cy * cx
    return R

@dataclass
class Pose:
    t: np.ndarray   # (3,)
    R: np.ndarray   # (3,3)

    @staticmethod
    def from_xyz_rpy(xyz: tuple[float,float,float], rpy_deg: tuple[float,float,float]) -> "Pose":
        R = rotation_from_rpy(np.deg2rad(rpy_deg))
        return Pose(t=np.array(xyz, dtype=float), R=R.astype(float))

    def apply(self, p_body: np.ndarray) -> np.ndarray:
        return (self.R @ np.asarray(p_body, dtype=float).T).T + self.t
