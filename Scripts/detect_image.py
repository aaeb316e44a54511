from __future__ import annotations

import argparse
import sys
from pathlib import Path

import cv2

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from face_kit import CoordinateMapper, NMSConfig, load_pipeline  # noqa: E402
from face_kit.visualize import draw_rectangle  # noqa: E402


def read_image(path: str):
    img = cv2.imread(path)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {path}")
    return img


def main() -> int:
    p = argparse.ArgumentParser(description="Run the face detector on one image and show the result.")
    p.add_argument("image")
    p.add_argument("--model", default="models/face_detector.onnx")
    p.add_argument("--score-threshold", type=float, default=0.5)
    p.add_argument("--iou-threshold", type=float, default=0.5)
    p.add_argument("--out", default=None, help="Write the annotated image here instead of showing it.")
    args = p.parse_args()

    image = read_image(args.image)
    h, w = image.shape[:2]
    mapper = CoordinateMapper(view_width=w, view_height=h, mirror_horizontal=False)

    with load_pipeline(
        args.model,
        nms_cfg=NMSConfig(score_threshold=args.score_threshold, iou_threshold=args.iou_threshold),
        channel_order="bgr",
    ) as pipeline:
        faces = pipeline(image)

    vis = image
    for face in faces:
        rect, command = mapper.map(face)
        print(f"score={face.score:.3f} rect={rect.as_ltrb()} angles=({command.angle1}, {command.angle2})")
        vis = draw_rectangle(vis, rect, label=f"{face.score:.2f}", thickness=2)
    if not faces:
        print("no face above threshold")

    if args.out:
        cv2.imwrite(args.out, vis)
        print(f"wrote {args.out}")
    else:
        cv2.imshow("faces", vis)
        cv2.waitKey(0)
        cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
