# optoolkit

Building blocks for writing controller operators in Python. The package
depends only on the standard library.

## Installation

```
pip install optoolkit
```

To run the test suite, install the test extra:

```
pip install "optoolkit[test]"
pytest
```

## What is inside

- `optoolkit.operand`: the `Operand` base class, `OperandOrder` (steps of
  operands, with `reverse()`, `blockers()` and a readable `str()`),
  `RequeueStrategy`, `ReconcilerEvent`, `step_requeue_strategy`, and the run
  calls `call_ensure` and `call_cleanup`. `call_ensure` ensures an operand,
  checks its readiness and runs its post-ready actions; an operand that is
  not ready raises `NotReadyError`.
- `optoolkit.dag`: `OperandDAG` turns the `requires()` relationships between
  operands into ordered steps with `order()`. Duplicate names, unknown
  requirements and cycles raise `DAGError`.
- `optoolkit.executor`: `Executor.execute_operands()` runs an `OperandOrder`
  step by step, serially or on a thread pool (`ExecutionStrategy.SERIAL` /
  `ExecutionStrategy.PARALLEL`), and returns a `Result`. Failures are raised
  together as an `ExceptionGroup`; a failed blocking operand stops the
  remaining steps.
- `optoolkit.composite`: `CompositeOperator` ties these together. `ensure()`
  runs operands in dependency order, `cleanup()` deletes in reverse order.
  An operand that is not ready yet yields a requeue after `retry_period`
  seconds instead of an error. A `suspension_check` can pause the operator.
- `optoolkit.predicate`: `CreateEvent`, `UpdateEvent`, `DeleteEvent`,
  `Predicate` and `FinalizerChangedPredicate`, which passes updates only when
  an object's finalizers changed.
- `optoolkit.graceful`: `Graceful` runs a component and calls its stop
  function once the given `threading.Event` is set; `wait()` blocks until
  the stop has finished.
- `optoolkit.singleton`: `get_instance(list_kind)` returns a function that
  fetches the single instance through a client's `list()`, `None` if there
  is none, and raises `MultipleInstancesFound` if there are several.
- `optoolkit.source`: `Kind`, `KindWithCache` / `new_kind_with_cache` and
  the `EventHandler` adapter that turns informer notifications (including
  `DeletedFinalStateUnknown` tombstones) into events filtered by predicates.
- `optoolkit.admission`: `MutatingHandler` and `ValidatingHandler` decode
  JSON admission `Request`s into mapping objects, run chains of defaulting
  and validating functions and answer with a `Response`. Defaulting answers
  carry a JSON patch built by `create_patch`. A validation that raises
  denies the request; an `APIStatusError` sets the response status itself.
- `optoolkit.builder`: `webhook_managed_by(manager)` returns a `Builder`
  that registers a `Controller`'s mutating and validating webhooks on the
  manager's `WebhookServer`, skipping paths that are already taken.
- `optoolkit.functions`: ready-made functions such as `add_labels`,
  `add_annotations`, `add_cluster_version_annotation`,
  `validate_labels_create`, `validate_labels_update` and
  `validate_singleton_create`.
- `optoolkit.tracing`, `optoolkit.telemetry`, `optoolkit.env`: in-memory
  spans, a `Logger` over the `logging` module, a `TracingLogger` that mirrors
  records into spans, `TracerProvider` and `Instrumentation`, and helpers
  for reading settings such as `DISABLE_TRACING` from the environment.

## Example

```python
from optoolkit.composite import CompositeOperator
from optoolkit.executor import ExecutionStrategy

operator = CompositeOperator(
    recorder,
    operands=[database, cache, app],
    execution_strategy=ExecutionStrategy.SERIAL,
)
print(operator.order())
result = operator.ensure(obj, owner_ref)
if result.requeue:
    ...
```

Here `database`, `cache` and `app` are your `Operand` implementations, each
naming the operands it `requires()`. `recorder` is passed to the `record()`
method of every event the operands return.

## What it does not do

- It has no client for a cluster API: objects, clients, caches, informers
  and managers are whatever you pass in.
- The admission handlers take and return plain Python objects; there is no
  HTTP or TLS server, and `WebhookServer` only maps paths to webhooks.
- Spans are kept in memory by a recording `TracerProvider`; nothing exports
  them to a trace collector.
- It does not record the API calls made through a client, nor write access
  rules or role manifests.