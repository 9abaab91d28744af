# ---
# jupyter:
#   jupytext:
#     formats: ipynb,py:light
#     text_representation:
#       extension: .py
#       format_name: light
#       format_version: '1.5'
#       jupytext_version: 1.4.1
#   kernelspec:
#     display_name: Python 3
#     language: python
#     name: python3
# ---

# # How to use the Simulation Engine
#
# In this notebook, a simple demonstration of how to run a UK tuberculosis scenario with the simulation engine is provided.

# +
import matplotlib.pyplot as plt
import pandas as pd

from tbdemic.config import create_default_config
from tbdemic.engine import SimulationEngine
from tbdemic.model import basic_reproduction_number, transmission_rate_for_r0
from tbdemic.policy import PolicyIntervention, PolicyType
from tbdemic.serialization import serialize_state

# -

# The default configuration describes the UK: 67 million people over ten years, with the current risk-based neonatal BCG policy and pre-entry screening of imported cases.

config = create_default_config(time_step=1.0)
config.disease_params

# The baseline transmission rate gives a small basic reproduction number. A transmission rate calibrated to a target R0 can be found by inverting the R0 formula:

# +
print(f"R0 with baseline beta: {basic_reproduction_number(config.disease_params):.4f}")

beta_calibrated = transmission_rate_for_r0(1.7, config.disease_params)
print(f"beta for R0 = 1.7: {beta_calibrated:.6f}")
# -

# Running a scenario headlessly takes a single call:

engine = SimulationEngine(config)
state = engine.run(progress=True)

state.metrics

# The history is available as a `pandas.DataFrame`:

df_baseline = engine.history_data_frame
df_baseline.tail()

# Now, let's compare with a scenario where universal BCG and active case finding start after one year:

# +
interventions = [
    PolicyIntervention("ubcg", PolicyType.UNIVERSAL_BCG, name="Universal BCG", start_day=365),
    PolicyIntervention(
        "acf", PolicyType.ACTIVE_CASE_FINDING, name="Active case finding", start_day=365
    ),
]
engine_policy = SimulationEngine(config.merged({"active_interventions": interventions}))
engine_policy.run(progress=True)

df_policy = engine_policy.history_data_frame

# +
df_comparison = pd.DataFrame(
    {
        "baseline": df_baseline.set_index("day")["I"],
        "interventions": df_policy.set_index("day")["I"],
    }
)

df_comparison.plot(figsize=(9, 6))
plt.xlabel("Day")
plt.ylabel("Active TB cases")
plt.show()
# -

# Events logged during the run:

pd.DataFrame([event.description for event in engine_policy.state.events], columns=["event"])

# Finally, the state can be serialized to a plain record, as sent to a display layer:

record = serialize_state(engine_policy.state, include_history=False)
record["metrics"]
