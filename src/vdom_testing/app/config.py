# Marks containers allocated by mount() so they are easy to spot in markup.
CONTAINER_ATTRIBUTE = "data-vdom-test-container"

# Placeholder used when a DOM stub's markup contains no element.
STUB_TAG = "div"
STUB_ATTRIBUTE = "data-vdom-stub"
