import pathlib
import sys

# Ensure src package is on path
sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1] / "src"))
