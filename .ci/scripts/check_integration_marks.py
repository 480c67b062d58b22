import ast
import sys
from pathlib import Path

SOURCE_ROOT = Path("src/treecover")

missing_marks = []
misplaced_marks = []


def has_integration_marker(decorator_list):
    for decorator in decorator_list:
        if isinstance(decorator, ast.Call):
            func = decorator.func
        else:
            func = decorator

        if isinstance(func, ast.Attribute) and func.attr == "integration":
            if isinstance(func.value, ast.Name) and func.value.id == "mark":
                return True
            if isinstance(func.value, ast.Attribute) and func.value.attr == "mark":
                return True
    return False


def has_module_integration_mark(tree):
    return any(
        isinstance(node, ast.Assign)
        and any(
            target.id == "pytestmark" for target in node.targets if isinstance(target, ast.Name)
        )
        for node in tree.body
    )


def test_functions(tree):
    return [
        node
        for node in tree.body
        if isinstance(node, ast.FunctionDef) and node.name.startswith("test")
    ]


# Integration tests talk to Earth Engine, so every one must be marked.
for file in SOURCE_ROOT.rglob("*__it.py"):
    tree = ast.parse(file.read_text(), filename=str(file))
    module_marked = has_module_integration_mark(tree)

    for node in test_functions(tree):
        if not module_marked and not has_integration_marker(node.decorator_list):
            missing_marks.append(f"{file}:{node.lineno} {node.name}")

# Unit tests run offline and must not be skipped along with the integration tests.
for file in SOURCE_ROOT.rglob("*__test.py"):
    tree = ast.parse(file.read_text(), filename=str(file))

    for node in test_functions(tree):
        if has_integration_marker(node.decorator_list):
            misplaced_marks.append(f"{file}:{node.lineno} {node.name}")

if missing_marks:
    print("❌ Missing @pytest.mark.integration or pytestmark:")
    for line in missing_marks:
        print("  -", line)

if misplaced_marks:
    print("❌ Integration marks on unit tests, move them to an __it.py module:")
    for line in misplaced_marks:
        print("  -", line)

if missing_marks or misplaced_marks:
    sys.exit(1)
