"""Example: Bell state on the local statevector backend."""
from tiny_qsim import Circuit, LocalBackend

print("=" * 50)
print("tiny-qsim: Bell State Example")
print("=" * 50)

qc = Circuit(2).h(0).cx(0, 1).measure_all()
result = LocalBackend(seed=42).run(qc, shots=1000)

print("\nMeasurement Results:")
for state, count in sorted(result.histogram().items()):
    print(f"  |{state}⟩: {count:4d} ({100*count/1000:5.1f}%)")

print("\nExpected: ~50% |00⟩ and ~50% |11⟩ (entangled!)")
