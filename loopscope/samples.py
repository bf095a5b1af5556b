"""Built-in programs for demos and the ``samples`` command."""
from __future__ import annotations
from typing import Dict

SAMPLES: Dict[str, str] = {
    "synchronous": """console.log('Starting execution');
const result = 2 + 2;
console.log('Result:', result);
console.log('Execution complete');""",
    "setTimeout": """console.log('Start');
setTimeout(() => {
  console.log('Timeout callback executed');
}, 1000);
console.log('End');""",
    "promise": """console.log('Start');
Promise.resolve().then(() => {
  console.log('Promise microtask executed');
});
console.log('End');""",
    "asyncAwait": """async function asyncFunction() {
  console.log('Async function start');
  await Promise.resolve();
  console.log('After await');
}
asyncFunction();
console.log('After async call');""",
    "complex": """console.log('Main thread start');
setTimeout(() => {
  console.log('Timeout 1');
}, 1000);
Promise.resolve().then(() => {
  console.log('Promise 1');
  setTimeout(() => {
    console.log('Timeout 2');
  }, 500);
});
console.log('Main thread end');""",
}

def get_sample(name: str) -> str:
    try:
        return SAMPLES[name]
    except KeyError:
        raise KeyError(f"unknown sample {name!r}; choose from {', '.join(SAMPLES)}") from None
