import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def main():
    from src.feature_engineering.main import main as feature_main
    return feature_main()


if __name__ == "__main__":
    sys.exit(main())
