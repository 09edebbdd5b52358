from django import template

register = template.Library()

@register.filter
def cell_classes(cell):
    """CSS classes for a board cell in its current reveal state."""
    classes = ["cell-content", "text-wrap"]
    if not cell:
        return " ".join(classes)
    state = cell.get("state")
    if state == "question":
        classes.append("expanded")
    elif state == "answer":
        classes.append("answer")
    return " ".join(classes)

@register.filter
def is_hidden(cell):
    """Whether the cell still shows the placeholder."""
    if not cell:
        return True
    return cell.get("state", "hidden") == "hidden"
