from loopscope.extractor import parse_code_to_steps
from loopscope.types import ActionTag, QueueId, TaskStatus

SCENARIO = "console.log('a'); setTimeout(()=>{}, 0); Promise.resolve()"


def _membership(scheduler):
    seen = {}
    for name, tasks in scheduler.snapshots().items():
        for task in tasks:
            assert task.id not in seen, f"task {task.id} in {seen.get(task.id)} and {name}"
            seen[task.id] = name
    return seen


def test_admit_assigns_increasing_ids_and_status(scheduler, make_step):
    a = scheduler.admit(make_step(QueueId.CallStack))
    b = scheduler.admit(make_step(QueueId.PendingAsync, delay_ms=10))
    c = scheduler.admit(make_step(QueueId.DeferredQueue))
    assert [a.id, b.id, c.id] == [1, 2, 3]
    assert a.status == TaskStatus.Pending
    assert b.status == TaskStatus.Waiting
    assert c.status == TaskStatus.Pending
    assert scheduler.clock.pending_count == 1


def test_unknown_queue_is_coerced_to_call_stack(scheduler):
    task = scheduler.admit({"kind": "CallExpression", "description": "odd", "targetQueue": "nowhere"})
    assert task.queue == QueueId.CallStack
    assert [t.id for t in scheduler.call_stack] == [task.id]


def test_legacy_step_mapping_is_accepted(scheduler):
    task = scheduler.admit({
        "type": "CallExpression",
        "line": 2,
        "description": "setTimeout call - moving to Web APIs",
        "action": "setTimeout",
        "isAsync": True,
        "delay": 500,
        "queue": "webAPIs",
    })
    assert task.queue == QueueId.PendingAsync
    assert task.delay_ms == 500
    assert task.step.action == ActionTag.Timer


def test_each_task_lives_in_exactly_one_container(scheduler, clock, make_step):
    for i, queue in enumerate([QueueId.CallStack, QueueId.PendingAsync, QueueId.DeferredQueue,
                               QueueId.PendingAsync, QueueId.CallStack]):
        scheduler.admit(make_step(queue, description=f"t{i}", delay_ms=5 * i))
        assert len(_membership(scheduler)) == i + 1
    clock.advance(100)
    membership = _membership(scheduler)
    assert len(membership) == 5
    assert sorted(k for k, v in membership.items() if v == "callbackQueue") == [2, 4]
    assert scheduler.pending_async == []


def test_select_next_is_idempotent(scheduler, make_step):
    scheduler.admit(make_step(QueueId.CallStack, "first"))
    scheduler.admit(make_step(QueueId.CallStack, "second"))
    picks = {scheduler.select_next().id for _ in range(5)}
    assert picks == {1}
    assert len(scheduler) == 2


def test_select_next_on_empty_scheduler(scheduler):
    assert scheduler.select_next() is None
    assert scheduler.is_idle()


def test_timers_elapse_in_delay_order(scheduler, clock, make_step):
    slow = scheduler.admit(make_step(QueueId.PendingAsync, "slow", delay_ms=1000))
    fast = scheduler.admit(make_step(QueueId.PendingAsync, "fast", delay_ms=500))
    clock.advance(499)
    assert scheduler.callback_queue == []
    clock.advance(501)
    assert [t.id for t in scheduler.callback_queue] == [fast.id, slow.id]
    assert all(t.status == TaskStatus.Pending for t in scheduler.callback_queue)


def test_advance_timer_moves_atomically(scheduler, make_step):
    task = scheduler.admit(make_step(QueueId.PendingAsync, delay_ms=50))
    moved = scheduler.advance_timer(task.id)
    assert moved is task
    assert scheduler.location(task.id) == QueueId.CallbackQueue
    assert scheduler.pending_async == []
    # a second elapse for the same id is not a pending task any more
    assert scheduler.advance_timer(task.id) is None
    assert [t.id for t in scheduler.callback_queue] == [task.id]


def test_advance_timer_unknown_id_is_noop(scheduler):
    assert scheduler.advance_timer(99) is None
    assert scheduler.remove(99) is None


def test_priority_order(scheduler, clock, make_step):
    sync = scheduler.admit(make_step(QueueId.CallStack))
    timer = scheduler.admit(make_step(QueueId.PendingAsync, delay_ms=0))
    deferred = scheduler.admit(make_step(QueueId.DeferredQueue))
    clock.advance(0)
    order = []
    while scheduler.select_next() is not None:
        task = scheduler.select_next()
        order.append(task.id)
        scheduler.remove(task.id)
    assert order == [deferred.id, timer.id, sync.id]


def test_scenario_selection_sequence(scheduler, tracker, clock):
    steps = parse_code_to_steps(SCENARIO)
    wanted = (ActionTag.Console, ActionTag.Timer, ActionTag.Deferred)
    for step in steps:
        if step.action in wanted:
            scheduler.admit(step)
    clock.advance(0)
    picked = []
    while True:
        task = scheduler.select_next()
        if task is None:
            break
        picked.append(task.queue)
        tracker.begin_execution(task)
        tracker.complete(task.id)
    assert picked == [QueueId.DeferredQueue, QueueId.CallbackQueue, QueueId.CallStack]


def test_deferred_drains_before_callbacks_even_when_added_mid_drain(scheduler, tracker, clock, make_step):
    scheduler.admit(make_step(QueueId.PendingAsync, "cb1", delay_ms=0))
    scheduler.admit(make_step(QueueId.PendingAsync, "cb2", delay_ms=0))
    scheduler.admit(make_step(QueueId.DeferredQueue, "d1"))
    scheduler.admit(make_step(QueueId.DeferredQueue, "d2"))
    clock.advance(0)
    order = []

    def run_next():
        task = scheduler.select_next()
        tracker.begin_execution(task)
        order.append(task.description)
        tracker.complete(task.id)

    run_next()
    scheduler.admit(make_step(QueueId.DeferredQueue, "d3"))
    run_next()
    run_next()
    run_next()
    scheduler.admit(make_step(QueueId.DeferredQueue, "d4"))
    run_next()
    run_next()
    assert order == ["d1", "d2", "d3", "cb1", "d4", "cb2"]
    assert scheduler.is_idle()


def test_snapshots_are_copies(scheduler, make_step):
    scheduler.admit(make_step(QueueId.CallStack, "first"))
    snap = scheduler.call_stack
    snap[0].description = "changed"
    snap.clear()
    assert scheduler.select_next().description == "first"


def test_reset_clears_queues_and_timers(scheduler, clock, make_step):
    scheduler.admit(make_step(QueueId.PendingAsync, delay_ms=10))
    scheduler.admit(make_step(QueueId.CallStack))
    scheduler.reset()
    assert scheduler.is_idle()
    assert clock.pending_count == 0
    assert scheduler.admit(make_step()).id == 1
