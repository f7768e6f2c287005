"""Run the kustomize-stage command line tool with `python -m kustomize_stage`."""

from kustomize_stage.tool.kustomize_stage import main

if __name__ == "__main__":
    main()
