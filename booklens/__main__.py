"""
Entry point for scanning a book cover or spine from the command line.
"""

import argparse
import asyncio
import json

from booklens                                        import (
    BookLensError, ImageBuffer, MultiPassOrchestrator, ProgressEvent, RecognitionResult,
    detect_vertical_text, preprocess
)
from booklens.core.recognition_engine.easyocr_engine import EasyOCREngine
from pathlib                                         import Path

async def run(args: argparse.Namespace) -> RecognitionResult:
    """
    Runs one scan of the requested image and always releases the engine afterwards.
    """
    async with EasyOCREngine(gpu = args.gpu or None) as engine:
        orchestrator = MultiPassOrchestrator(engine = engine)

        def print_progress(event: ProgressEvent):
            print(f"[{event.progress * 100:5.1f}%] {event.status}")

        if args.single_pass:
            return await orchestrator.recognize_single_pass(
                image            = args.image_path,
                language         = args.language,
                preprocess_image = not args.no_preprocessing
            )

        return await orchestrator.recognize_multi_pass(
            image             = args.image_path,
            language          = args.language,
            try_rotations     = not args.no_rotations,
            try_preprocessing = not args.no_preprocessing,
            on_progress       = print_progress
        )

def save_preprocessed(image_path: str, output_dir: Path):
    """
    Writes the preprocessed rendering of the image to output_dir for inspection.
    """
    output_dir.mkdir(parents = True, exist_ok = True)

    source      = asyncio.run(ImageBuffer.load(image_path))
    output_path = output_dir / f"{Path(image_path).stem or 'image'}_preprocessed.png"
    output_path.write_bytes(preprocess(source).encode('.png'))

    print(f"Preprocessed image saved to {output_path}")

def main():

    parser = argparse.ArgumentParser(
        description = "Recognize the text on a photographed book cover or spine."
    )

    parser.add_argument(
        "--image-path",
        type     = str,
        required = True,
        help     = "Path or URL of the image to scan."
    )
    parser.add_argument(
        "--language",
        type    = str,
        default = None,
        help    = "Recognition language, e.g. 'eng' or 'eng+fra' (defaults to the config)."
    )
    parser.add_argument(
        "--no-rotations",
        action = "store_true",
        help   = "Skip the 90/180/270 degree passes."
    )
    parser.add_argument(
        "--no-preprocessing",
        action = "store_true",
        help   = "Skip the preprocessed and deskewed passes."
    )
    parser.add_argument(
        "--single-pass",
        action = "store_true",
        help   = "Run a single recognition pass instead of the multi-pass search."
    )
    parser.add_argument(
        "--gpu",
        action = "store_true",
        help   = "Run EasyOCR on the GPU."
    )
    parser.add_argument(
        "--save-preprocessed",
        type    = str,
        default = None,
        help    = "Directory to write the preprocessed image to, for inspection."
    )

    args = parser.parse_args()

    is_remote = args.image_path.startswith(('http://', 'https://'))
    if not is_remote:
        image_path = Path(args.image_path).resolve()
        if not image_path.exists() or not image_path.is_file():
            print(f"Error: The specified image does not exist or is not a file: {image_path}")
            return
        args.image_path = str(image_path)

    try:
        if args.save_preprocessed:
            save_preprocessed(args.image_path, Path(args.save_preprocessed))
        result = asyncio.run(run(args))
    except BookLensError as e:
        print(f"Error: {e}")
        return

    print(json.dumps(
        {
            'method'     : result.method,
            'confidence' : round(result.confidence, 2),
            'vertical'   : detect_vertical_text(result),
            'text'       : result.text
        },
        ensure_ascii = False,
        indent       = 4
    ))

if __name__ == "__main__":
    main()
