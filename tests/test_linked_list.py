import pytest

from mosdns.linked_list import Elem, LinkedList


def check_link_pointers(lst):
    elem = lst.front
    count = 0
    while elem is not None:
        if elem.next is not None:
            assert elem.next.prev is elem
        if elem.prev is not None:
            assert elem.prev.next is elem
        elem = elem.next
        count += 1
    assert count == len(lst)


def test_push_back():
    lst = LinkedList()
    lst.push_back(Elem(1))
    lst.push_back(Elem(2))
    assert list(lst) == [1, 2]
    check_link_pointers(lst)


def test_push_front():
    lst = LinkedList()
    lst.push_front(Elem(1))
    lst.push_front(Elem(2))
    assert list(lst) == [2, 1]
    check_link_pointers(lst)


@pytest.mark.parametrize(
    "values, pop, want, want_list",
    [
        ([0, 1, 2], 0, 0, [1, 2]),
        ([0, 1, 2], 1, 1, [0, 2]),
        ([0, 1, 2], 2, 2, [0, 1]),
    ],
)
def test_pop_elem(values, pop, want, want_list):
    lst = LinkedList()
    elems = [Elem(v) for v in values]
    for e in elems:
        lst.push_back(e)
    check_link_pointers(lst)

    got = lst.pop_elem(elems[pop])
    check_link_pointers(lst)

    assert got.value == want
    assert list(lst) == want_list
    assert got.prev is None and got.next is None


def test_front_and_back():
    lst = LinkedList()
    assert lst.front is None and lst.back is None
    a, b = Elem("a"), Elem("b")
    lst.push_back(a)
    lst.push_back(b)
    assert lst.front is a
    assert lst.back is b
    lst.pop_elem(a)
    lst.pop_elem(b)
    assert lst.front is None and lst.back is None
    assert len(lst) == 0


def test_push_used_elem_raises():
    lst = LinkedList()
    e = lst.push_back(Elem(1))
    with pytest.raises(ValueError):
        lst.push_back(e)
    other = LinkedList()
    with pytest.raises(ValueError):
        other.push_front(e)


def test_pop_foreign_elem_raises():
    a, b = LinkedList(), LinkedList()
    e = a.push_back(Elem(1))
    with pytest.raises(ValueError):
        b.pop_elem(e)
    assert len(a) == 1


def test_popped_elem_can_be_reused():
    lst = LinkedList()
    e = lst.push_back(Elem(5))
    lst.push_back(Elem(6))
    lst.push_back(lst.pop_elem(e))
    assert list(lst) == [6, 5]
    check_link_pointers(lst)